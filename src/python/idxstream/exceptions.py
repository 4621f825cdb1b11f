# idxstream/exceptions.py
"""Custom exception types for the idxstream library."""

from typing import Optional

class IdxError(Exception):
    """Base exception for all errors raised by this library."""
    pass

class IdxConfigError(IdxError):
    """Error related to configuration or setup, such as a missing dataset file."""
    pass

class MalformedHeaderError(IdxError):
    """
    Error raised when an IDX header is unreadable or disagrees with the file.

    Attributes:
        message (str): The primary error message.
        path (str | None): The offending file, when known.
        expected (int | None): The expected value (e.g. a byte count).
        actual (int | None): The value actually found.
    """
    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = path
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} (path='{self.path}')"

class UnknownTypeCodeError(MalformedHeaderError):
    """Error raised when the header's type code is not a known `DataType`."""
    def __init__(self, type_code: int, *, path: Optional[str] = None):
        super().__init__(f"Unknown data type code 0x{type_code:02X}", path=path)
        self.type_code = type_code

class RangeError(IdxError, IndexError):
    """
    Error raised when a requested record window falls outside the file.

    Attributes:
        name (str): The offending parameter, 'begin' or 'count'.
        value (int): The value that was requested.
        lower (int): Lower bound of the valid range.
        upper (int): Upper bound of the valid range (see `closed`).
        closed (bool): Whether `upper` itself is allowed.
    """
    def __init__(self, name: str, value: int, lower: int, upper: int, *, closed: bool = False):
        bracket = "]" if closed else ")"
        kind = "closed" if closed else "half-open"
        super().__init__(
            f"{name} {value!r} out of bounds, set in {kind} range [{lower}, {upper}{bracket}"
        )
        self.name = name
        self.value = value
        self.lower = lower
        self.upper = upper
        self.closed = closed

class TruncatedRecordError(IdxError):
    """
    Error describing a final record shorter than the element size.

    By default a truncated record is delivered as data (see
    `idxstream.stream.ShortRecord`); it is only raised in strict mode.
    """
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Source ended mid-record: expected {expected} bytes, got {actual}"
        )
        self.expected = expected
        self.actual = actual

class SourceIOError(IdxError, OSError):
    """Error raised when the underlying byte source fails."""
    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} (path='{self.path}')"

    @classmethod
    def from_os_error(cls, os_exc: OSError, path: Optional[str] = None) -> "SourceIOError":
        """Factory method to wrap an OSError raised by a file operation."""
        reason = os_exc.strerror or str(os_exc)
        return cls(f"I/O error: {reason}", path=path)
