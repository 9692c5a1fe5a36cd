"""Strike protocol encoder -- byte buffer to Gforth source.

Produces the two artifacts the Forth kernel needs for one strike:

Data fragment
    A source file declaring the buffer as a Forth data array::

        \\ Auto-generated strike data
        CREATE STRIKE-DATA 72 , 101 , 108 , 108 , 111 ,

    Each byte is a decimal literal followed by the ``,`` (comma / append
    cell) word.  One array per fragment; nothing accumulates across calls.

Execution directive
    One line passed to ``gforth -e``::

        s" dist/substrate.bin" strike-init STRIKE-DATA 5 strike-sequence strike-close bye

The encoder never launches anything.  Its only side effect is
``write_fragment``, which goes through ``dotmatrix.utils.fs``.

Destination embedding:
    ``s"`` has no escape syntax -- the literal ends at the first ``"``.
    A destination containing ``"``, a newline or any other control
    character is rejected with ``UnsafeDestination`` before emission.
    No escaping is attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Sequence

from dotmatrix.errors import UnsafeDestination
from dotmatrix.utils import fs

logger = logging.getLogger(__name__)

FRAGMENT_HEADER = "\\ Auto-generated strike data"
APPEND_WORD = ","


def check_destination(destination: str) -> None:
    """Reject destinations that cannot sit inside an ``s"`` literal.

    Raises
    ------
    UnsafeDestination
        Empty, or containing ``"`` or a control character.
    """
    if not destination:
        raise UnsafeDestination(destination, "destination is empty")
    if '"' in destination:
        raise UnsafeDestination(
            destination, "contains '\"', which terminates the Forth string literal"
        )
    for ch in destination:
        if ord(ch) < 32 or ord(ch) == 127:
            raise UnsafeDestination(
                destination, f"contains control character 0x{ord(ch):02X}"
            )


@dataclass(frozen=True, slots=True)
class StrikeProgram:
    """Encoded artifacts for one strike."""

    fragment_source: str
    directive: str
    byte_count: int


class StrikeProtocolEncoder:
    """Encode validated buffers for the Forth kernel.

    Parameters
    ----------
    array_name : str
        Name of the ``CREATE``d data array.
    init_word, sequence_word, close_word : str
        Kernel words invoked by the directive, in that order.

    Notes
    -----
    The input buffer must already have passed
    ``ByteValidator.validate_strict``; values are emitted verbatim.
    """

    def __init__(
        self,
        array_name: str = "STRIKE-DATA",
        init_word: str = "strike-init",
        sequence_word: str = "strike-sequence",
        close_word: str = "strike-close",
    ) -> None:
        self.array_name = array_name
        self.init_word = init_word
        self.sequence_word = sequence_word
        self.close_word = close_word

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fragment_source(self, buffer: Sequence[int]) -> str:
        """Generate the data fragment (comment line + one array line)."""
        buf = StringIO()
        buf.write(f"{FRAGMENT_HEADER}\n")
        buf.write(f"CREATE {self.array_name} ")
        for b in buffer:
            buf.write(f"{b} {APPEND_WORD} ")
        buf.write("\n")
        return buf.getvalue()

    def directive(self, destination: str, length: int) -> str:
        """Generate the one-line ``-e`` directive.

        Raises
        ------
        UnsafeDestination
            If *destination* cannot be embedded safely.
        """
        check_destination(destination)
        return (
            f's" {destination}" {self.init_word} '
            f"{self.array_name} {length} {self.sequence_word} "
            f"{self.close_word} bye"
        )

    def encode(self, buffer: Sequence[int], destination: str) -> StrikeProgram:
        """Encode *buffer* and *destination* into a ``StrikeProgram``."""
        directive = self.directive(destination, len(buffer))
        return StrikeProgram(
            fragment_source=self.fragment_source(buffer),
            directive=directive,
            byte_count=len(buffer),
        )

    def write_fragment(self, program: StrikeProgram, path: str | Path) -> Path:
        """Write the fragment atomically, overwriting any previous content.

        Raises
        ------
        OSError
            From the filesystem gateway.
        """
        path = Path(path)
        fs.atomic_write_text(path, program.fragment_source)
        logger.debug(
            "Wrote fragment %s (%d bytes encoded)", path, program.byte_count,
        )
        return path
