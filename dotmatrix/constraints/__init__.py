"""
Byte constraint policy.

Defines which byte values may be struck and validates buffers against it
in fail-fast and exhaustive modes.
"""

from dotmatrix.constraints.policy import (
    ByteBuffer,
    ByteValidator,
    ConstraintSet,
    Contaminant,
)

__all__ = ["ByteBuffer", "ByteValidator", "ConstraintSet", "Contaminant"]
