"""Canonical hex + ASCII dump.

The same rendering is used for preview (bytes about to be struck) and
verify (bytes read back from the substrate) so the two can be diffed by
eye or by ``diff``.  Layout per row of 16 bytes::

    00000000  48 65 6c 6c 6f 20 77 6f  72 6c 64 0a              |Hello world.|
    ^offset   ^hex, extra space before the 9th byte, padded to 48 ^ASCII

Offsets are absolute byte indices.  Printable ASCII [32, 126] renders as
itself, every other byte as ``.``.  Empty input renders as ``""``.
"""

from __future__ import annotations

from typing import Iterator, Sequence

BYTES_PER_ROW = 16
GROUP_SIZE = 8
HEX_FIELD_WIDTH = BYTES_PER_ROW * 3  # 16 pairs + 15 separators + 1 group gap
PLACEHOLDER = "."


def _hex_field(chunk: Sequence[int]) -> str:
    pairs = []
    for j, b in enumerate(chunk):
        pairs.append(f" {b:02x}" if j == GROUP_SIZE else f"{b:02x}")
    return " ".join(pairs)


def _ascii_field(chunk: Sequence[int]) -> str:
    return "".join(chr(b) if 32 <= b <= 126 else PLACEHOLDER for b in chunk)


def iter_rows(buffer: Sequence[int]) -> Iterator[str]:
    """Yield formatted rows in ascending offset order."""
    for offset in range(0, len(buffer), BYTES_PER_ROW):
        chunk = buffer[offset:offset + BYTES_PER_ROW]
        yield (
            f"{offset:08x}  {_hex_field(chunk):<{HEX_FIELD_WIDTH}}  "
            f"|{_ascii_field(chunk)}|"
        )


def render(buffer: Sequence[int]) -> str:
    """Render *buffer* as newline-joined dump rows (no trailing newline)."""
    return "\n".join(iter_rows(buffer))


class HexRenderer:
    """Stateless wrapper so the pipeline can take a renderer by injection."""

    def render(self, buffer: Sequence[int]) -> str:
        return render(buffer)
