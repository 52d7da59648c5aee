# kang/lowlevel.py
"""
A low-level wrapper around the zstandard library.

This module isolates the compression library boundary from the rest of the
package: the engines only see the `CompressionBackend` contract.
"""

from typing import Optional

import zstandard as zstd

from .abc import CompressionBackend
from .exceptions import KangBackendError, KangConfigError

DEFAULT_LEVEL = 10

_BLOCK_HEADER_SIZE = 3
_CHECKSUM_SIZE = 4
_BLOCK_RLE = 1
_BLOCK_RESERVED = 3

def _frame_compressed_size(source: memoryview) -> int:
    """Walks the block headers of the zstd frame at the start of `source`."""
    try:
        position = zstd.frame_header_size(source)
        has_checksum = zstd.get_frame_parameters(source).has_checksum
    except zstd.ZstdError as e:
        raise KangBackendError.from_zstd_error(e, "frame inspection") from e

    while True:
        if position + _BLOCK_HEADER_SIZE > len(source):
            raise KangBackendError("zstd frame is truncated")
        block_header = int.from_bytes(source[position:position + _BLOCK_HEADER_SIZE], "little")
        position += _BLOCK_HEADER_SIZE
        block_type = (block_header >> 1) & 0b11
        if block_type == _BLOCK_RESERVED:
            raise KangBackendError("zstd frame holds a reserved block type")
        position += 1 if block_type == _BLOCK_RLE else block_header >> 3
        if block_header & 1:
            break
    if has_checksum:
        position += _CHECKSUM_SIZE
    return position

class ZstdBackend(CompressionBackend):
    """
    A thin, direct wrapper over a zstd compressor/decompressor pair.
    It handles context setup and exception translation.

    Args:
        level: Compression level, an opaque positive integer (1-19 is the
            commonly used range). Out-of-range values are left to zstd.
        internal_chunk_size: Size of the jobs zstd splits a buffer into when
            `threads` is non-zero. None lets zstd pick.
        threads: Number of zstd worker threads per compress call (0 = inline).
    """
    def __init__(
        self,
        level: int = DEFAULT_LEVEL,
        *,
        internal_chunk_size: Optional[int] = None,
        threads: int = 0,
    ):
        if not isinstance(level, int) or isinstance(level, bool):
            raise KangConfigError(f"Compression level must be an integer, got {level!r}")
        self.level = level
        self.internal_chunk_size = internal_chunk_size
        self.threads = threads
        try:
            if internal_chunk_size is not None and threads:
                params = zstd.ZstdCompressionParameters.from_level(
                    level,
                    threads=threads,
                    job_size=internal_chunk_size,
                    write_content_size=True,
                )
                self._cctx = zstd.ZstdCompressor(compression_params=params)
            else:
                self._cctx = zstd.ZstdCompressor(
                    level=level, threads=threads, write_content_size=True
                )
            self._dctx = zstd.ZstdDecompressor()
        except (zstd.ZstdError, ValueError, TypeError) as e:
            raise KangConfigError(f"Failed to create zstd context: {e}") from e
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("Operation attempted on a closed ZstdBackend.")

    def compress(self, data) -> bytes:
        self._check_open()
        try:
            return self._cctx.compress(data)
        except zstd.ZstdError as e:
            raise KangBackendError.from_zstd_error(e, "compress") from e

    def decompressed_size(self, data) -> int:
        self._check_open()
        try:
            size = zstd.frame_content_size(data)
        except zstd.ZstdError as e:
            raise KangBackendError.from_zstd_error(e, "frame inspection") from e
        if size < 0:
            raise KangBackendError("zstd frame does not declare its content size")
        return size

    def decompress_into(self, data, out) -> int:
        """
        Decodes a single frame into `out`. Bytes after that frame, such as a
        second frame or padding, are rejected.
        """
        self._check_open()
        source = memoryview(data).cast('B')
        frame_size = _frame_compressed_size(source)
        if frame_size != len(source):
            raise KangBackendError(
                f"zstd frame spans {frame_size} bytes but the buffer holds {len(source)}"
            )
        target = memoryview(out).cast('B')
        total = 0
        try:
            with self._dctx.stream_reader(data, read_across_frames=False) as reader:
                while total < len(target):
                    n = reader.readinto(target[total:])
                    if n == 0:
                        break
                    total += n
        except zstd.ZstdError as e:
            raise KangBackendError.from_zstd_error(e, "decompress") from e
        return total

    def spawn(self) -> "ZstdBackend":
        return ZstdBackend(
            self.level,
            internal_chunk_size=self.internal_chunk_size,
            threads=self.threads,
        )

    def close(self) -> None:
        if not self._closed:
            self._cctx = None
            self._dctx = None
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __repr__(self) -> str:
        return (
            f"ZstdBackend(level={self.level}, "
            f"internal_chunk_size={self.internal_chunk_size}, threads={self.threads})"
        )
