"""Byte constraint policy and validator.

A ``ConstraintSet`` says which byte values may reach the striker: every
byte must be ``<= max_value`` and must not be one of the individually
forbidden values.  ``ByteValidator`` applies it in two modes:

Fail-fast (``validate_strict``)
    Gate in front of any physical action.  Raises on the first bad byte
    and stops scanning.

Exhaustive (``scan_all``)
    Used by preview and verify.  Never raises for contamination; returns
    every offending byte as a ``Contaminant`` in buffer order.

Rule order per byte is fixed:
    1. value is individually forbidden  -> that value's description
    2. value > max_value                -> "Non-ASCII (0xNN > max)"

This inverts the order of the earlier Rust/Tauri striker, which tested
``> max`` first and so reported a lone NBSP as "Non-ASCII (0xA0 > 127)".
With the forbidden check first, 160 and 194 (both above the default
ceiling) report their own descriptions instead.

Both modes share ``ByteValidator.check_byte`` so they always agree on
pass/fail and on the description a byte receives.

``ConstraintSet`` hashes on ``max_value`` only; ``forbidden`` is a
read-only mapping and takes part in equality, not in the hash.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from dotmatrix.errors import ByteOutOfRange, ForbiddenByte

ByteBuffer = Sequence[int]
"""Ordered byte values 0..255 owned by the caller for one operation."""

DEFAULT_MAX_VALUE = 127
NBSP = 160
UTF8_LEAD = 194


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConstraintSet:
    """Immutable byte policy.

    Parameters
    ----------
    max_value : int
        Inclusive upper bound for legal bytes.
    forbidden : Mapping[int, str]
        Individually banned values mapped to a human-readable reason.
        May overlap the ``max_value`` rule; both checks apply to every
        byte independently.
    """

    max_value: int = DEFAULT_MAX_VALUE
    forbidden: Mapping[int, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not 0 <= self.max_value <= 255:
            raise ValueError(f"max_value must be within [0, 255], got {self.max_value}")
        for value, reason in self.forbidden.items():
            if not 0 <= value <= 255:
                raise ValueError(f"forbidden value must be within [0, 255], got {value}")
            if not reason:
                raise ValueError(f"forbidden value {value} needs a description")
        # Read-only, sorted by value.
        object.__setattr__(
            self, "forbidden", MappingProxyType(dict(sorted(self.forbidden.items())))
        )

    @classmethod
    def default(cls) -> ConstraintSet:
        """ASCII ceiling plus the NBSP and UTF-8 lead-byte bans."""
        return cls(
            max_value=DEFAULT_MAX_VALUE,
            forbidden={
                NBSP: "NBSP (Non-Breaking Space)",
                UTF8_LEAD: "UTF-8 continuation marker",
            },
        )

    def allows(self, value: int) -> bool:
        """``True`` when *value* passes both rules."""
        return value not in self.forbidden and value <= self.max_value


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Contaminant:
    """One byte that violates the policy.

    ``position`` is the offset into the scanned buffer.
    """

    position: int
    value: int
    description: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class ByteValidator:
    """Apply a ``ConstraintSet`` to byte buffers.

    Parameters
    ----------
    constraints : ConstraintSet | None
        Policy to enforce.  ``None`` uses ``ConstraintSet.default()``.
    """

    def __init__(self, constraints: ConstraintSet | None = None) -> None:
        self.constraints = constraints or ConstraintSet.default()

    def check_byte(self, value: int, position: int) -> Contaminant | None:
        """Evaluate one byte; ``None`` means clean."""
        cs = self.constraints
        if cs.allows(value):
            return None
        reason = cs.forbidden.get(value)
        if reason is not None:
            return Contaminant(position, value, reason)
        return Contaminant(
            position, value, f"Non-ASCII (0x{value:02X} > {cs.max_value})"
        )

    def validate_strict(self, buffer: ByteBuffer) -> None:
        """Fail on the first violating byte.

        Raises
        ------
        ForbiddenByte
            First offending byte is individually banned.
        ByteOutOfRange
            First offending byte exceeds ``max_value``.
        """
        for position, value in enumerate(buffer):
            found = self.check_byte(value, position)
            if found is None:
                continue
            if value in self.constraints.forbidden:
                raise ForbiddenByte(position, value, found.description)
            raise ByteOutOfRange(position, value, self.constraints.max_value)

    def scan_all(self, buffer: ByteBuffer) -> list[Contaminant]:
        """Return every violation in ascending position order."""
        return [
            c
            for c in (self.check_byte(v, i) for i, v in enumerate(buffer))
            if c is not None
        ]
