# kang/exceptions.py
"""Custom exception types for the kang library."""

from typing import Optional

from .types import FailureKind

class KangError(Exception):
    """
    Base exception for all errors raised by this library.

    Attributes:
        message (str): The primary error message.
        kind (FailureKind): The failure category.
    """
    kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, *, kind: Optional[FailureKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return f"{self.message} (kind={self.kind.name})"

class KangConfigError(KangError):
    """Error related to configuration or setup, such as an invalid chunk size."""
    kind = FailureKind.CONFIG_ERROR

class KangTruncatedError(KangError):
    """An archive or source file is shorter than a field it must contain."""
    kind = FailureKind.TRUNCATED

class KangBadSignatureError(KangError):
    """The archive signature bytes are present but do not match."""
    kind = FailureKind.BAD_SIGNATURE

class KangSizeMismatchError(KangError):
    """
    A declared size disagrees with the size reported by the backend.

    Attributes:
        expected (int): The size recorded in the archive.
        actual (int): The size reported or produced by the backend.
        chunk_index (int | None): The chunk being decoded, None for the header.
    """
    kind = FailureKind.SIZE_MISMATCH

    def __init__(
        self,
        message: str,
        *,
        expected: int,
        actual: int,
        chunk_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.chunk_index = chunk_index

class KangBackendError(KangError):
    """
    Error raised when the compression backend itself reports a fault.

    This typically wraps a `zstandard.ZstdError`.
    """
    kind = FailureKind.BACKEND_ERROR

    @classmethod
    def from_zstd_error(cls, zstd_exc: Exception, operation: str) -> "KangBackendError":
        """Factory method to create a KangBackendError from a zstandard error."""
        return cls(f"zstd {operation} failed: {zstd_exc}")

class KangIOError(KangError):
    """
    Unable to open, create, read or write a path.

    Attributes:
        path (str): The path involved in the failed operation.
    """
    kind = FailureKind.IO_ERROR

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = path

    @classmethod
    def from_os_error(cls, os_exc: OSError, path) -> "KangIOError":
        """Factory method to create a KangIOError from an OSError."""
        reason = os_exc.strerror or str(os_exc)
        return cls(f"Cannot access '{path}': {reason}", path=str(path))
