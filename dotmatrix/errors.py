"""Strike error taxonomy.

Every failure the pipeline can report is one of the classes below.  They
carry structured fields (position, value, returncode, ...) so callers can
branch on type and attributes; ``str(exc)`` is the display message and is
only produced at the outermost boundary (CLI, host bridge).

Hierarchy::

    StrikeError
    ├── ByteOutOfRange
    ├── ForbiddenByte
    ├── FileOperationError
    ├── InterpreterNotFound
    ├── UnsafeDestination
    └── InterpreterExecutionError
        ├── InterpreterTimeout
        └── StrikeCancelled
"""

from __future__ import annotations


class StrikeError(Exception):
    """Base exception for all strike pipeline errors."""

    pass


class ByteOutOfRange(StrikeError):
    """A byte exceeds the configured maximum value."""

    def __init__(self, position: int, value: int, max_value: int = 127) -> None:
        self.position = position
        self.value = value
        self.max_value = max_value
        super().__init__(
            f"Byte {value} at position {position} exceeds ASCII limit ({max_value})"
        )


class ForbiddenByte(StrikeError):
    """A byte matches an individually banned value."""

    def __init__(self, position: int, value: int, description: str) -> None:
        self.position = position
        self.value = value
        self.description = description
        super().__init__(
            f"Forbidden byte {value} (0x{value:02X}) at position {position}: "
            f"{description}"
        )


class FileOperationError(StrikeError):
    """Filesystem read / write / mkdir failure, or missing kernel directory."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"File operation failed: {message}")

    @classmethod
    def from_os_error(cls, exc: OSError, action: str = "") -> FileOperationError:
        """Wrap an ``OSError`` keeping the system diagnostic."""
        detail = exc.strerror or str(exc)
        if action:
            return cls(f"{action}: {detail}")
        if exc.filename is not None:
            detail = f"{detail}: {exc.filename}"
        return cls(detail)


class InterpreterNotFound(StrikeError):
    """The interpreter binary could not be started for a version probe."""

    def __init__(self, binary: str = "gforth") -> None:
        self.binary = binary
        super().__init__(f"Gforth not found. Please install {binary}.")


class UnsafeDestination(StrikeError):
    """Destination cannot be embedded in the execution directive."""

    def __init__(self, destination: str, reason: str) -> None:
        self.destination = destination
        self.reason = reason
        super().__init__(f"Unsafe destination {destination!r}: {reason}")


class InterpreterExecutionError(StrikeError):
    """The interpreter failed to spawn or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.message = message
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Forth kernel execution failed: {message}")


class InterpreterTimeout(InterpreterExecutionError):
    """The interpreter ran longer than the configured timeout and was killed."""

    def __init__(self, timeout_s: float, stderr: str = "") -> None:
        self.timeout_s = timeout_s
        super().__init__(f"timed out after {timeout_s:g} s", stderr=stderr)


class StrikeCancelled(InterpreterExecutionError):
    """The strike was cancelled and the interpreter terminated."""

    def __init__(self) -> None:
        super().__init__("cancelled by caller")


def to_display(exc: BaseException) -> str:
    """Convert an error to the single string shown to the user."""
    return str(exc)
