"""User input -> byte buffer helpers.

The editor hands over either a comma-separated list of decimal byte
values (``"104, 101, 108"``) or plain ASCII text (``"hello"``).  These
helpers turn both into ``bytes`` and provide the small hex utilities the
front end displays next to the preview.

Parsing only checks that values are bytes (0..255).  Whether they may be
struck is the ``ByteValidator``'s job.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Sequence


class PayloadParseError(ValueError):
    """Raised when user input cannot be turned into bytes."""

    pass


_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def parse_byte_string(text: str) -> bytes:
    """Parse ``"72, 101, 108"`` into ``b"Hel"``.

    Whitespace around items is ignored.

    Raises
    ------
    PayloadParseError
        On an empty item, a non-integer, or a value outside 0..255.
    """
    items = [item.strip() for item in text.split(",")]
    if text.strip().endswith(","):
        items = items[:-1]

    values = []
    for idx, item in enumerate(items):
        if not item:
            raise PayloadParseError(f"Empty value at item {idx}")
        try:
            value = int(item, 10)
        except ValueError:
            raise PayloadParseError(f"Not a decimal byte at item {idx}: {item!r}") from None
        if not 0 <= value <= 255:
            raise PayloadParseError(f"Value {value} at item {idx} is outside 0..255")
        values.append(value)
    return bytes(values)


def string_to_bytes(text: str) -> bytes:
    """Encode ASCII *text*.

    Raises
    ------
    PayloadParseError
        If *text* contains a non-ASCII character.
    """
    try:
        return text.encode("ascii")
    except UnicodeEncodeError as exc:
        raise PayloadParseError(
            f"Non-ASCII character {text[exc.start]!r} at position {exc.start}"
        ) from None


def parse_payload(text: str) -> bytes:
    """Comma form if *text* contains a comma, ASCII text otherwise."""
    if "," in text:
        return parse_byte_string(text.strip())
    return string_to_bytes(text)


def bytes_to_hex(buffer: Sequence[int], sep: str = " ") -> str:
    """``[72, 101]`` -> ``"48 65"`` (lowercase)."""
    return sep.join(f"{b:02x}" for b in buffer)


def hex_to_bytes(text: str) -> bytes:
    """``"48656c"`` -> ``b"Hel"``; surrounding whitespace is ignored.

    Raises
    ------
    PayloadParseError
        On odd length or non-hex characters.
    """
    text = text.strip()
    if not _HEX_RE.match(text):
        raise PayloadParseError(f"Invalid hex characters in {text!r}")
    if len(text) % 2:
        raise PayloadParseError(f"Hex string has odd length ({len(text)})")
    return bytes.fromhex(text)


def has_traversal(path: str) -> bool:
    """``True`` if *path* has a ``..`` segment or a ``~`` home reference.

    Both separators are considered so ``foo\\..\\bar`` is caught on POSIX.
    """
    parts = set(PurePosixPath(path).parts) | set(PureWindowsPath(path).parts)
    return ".." in parts or "~" in parts or path.startswith("~")
