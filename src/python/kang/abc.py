# kang/abc.py
"""Abstract Base Classes for the kang library."""

import abc

import numpy as np

from .exceptions import KangSizeMismatchError

class KangFileBase(abc.ABC):
    """Abstract base class for .kang archive handlers."""

    @abc.abstractmethod
    def close(self) -> None:
        """
        Closes the handle and releases its backend.
        Subsequent operations on the object will raise an error.
        """
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        """Returns True if the handle is closed."""
        raise NotImplementedError

    def __enter__(self) -> "KangFileBase":
        if self.closed:
            raise ValueError("Cannot enter context with a closed file handle.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class CompressionBackend(abc.ABC):
    """
    Contract for the opaque block compressor driven by the chunked engines.

    A backend instance is not safe for concurrent use; the engines call
    `spawn()` to give every worker thread its own instance.
    """

    @abc.abstractmethod
    def compress(self, data) -> bytes:
        """
        Compresses a non-empty byte buffer in one shot.

        The size of the result is only known once compression completes.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def decompressed_size(self, data) -> int:
        """
        Returns the exact decompressed size declared by a compressed buffer,
        without decoding it.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def decompress_into(self, data, out) -> int:
        """
        Decodes a compressed buffer into the writable buffer `out`.

        Returns:
            The number of bytes written to `out`.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def spawn(self) -> "CompressionBackend":
        """Returns a new, independent backend with the same configuration."""
        raise NotImplementedError

    def decompress(self, data, expected_size: int) -> bytes:
        """Decodes `data`, requiring it to declare exactly `expected_size` bytes."""
        declared = self.decompressed_size(data)
        if declared != expected_size:
            raise KangSizeMismatchError(
                f"Compressed buffer declares {declared} bytes, expected {expected_size}",
                expected=expected_size,
                actual=declared,
            )
        out = np.empty(expected_size, dtype=np.uint8)
        written = self.decompress_into(data, out)
        if written != expected_size:
            raise KangSizeMismatchError(
                f"Backend produced {written} bytes, expected {expected_size}",
                expected=expected_size,
                actual=written,
            )
        return out.tobytes()

    def close(self) -> None:
        """Releases backend resources. The default implementation does nothing."""

    @property
    def closed(self) -> bool:
        return False

    def __enter__(self) -> "CompressionBackend":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
