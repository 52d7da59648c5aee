# kang/file.py
"""High-level Reader, Writer, source file helpers and the main `open` factory function."""

import builtins
import logging
from functools import cached_property
from typing import BinaryIO, List, Optional, Tuple, Union

import numpy as np

from .abc import CompressionBackend, KangFileBase
from .container import SIGNATURE, read_archive, read_archive_info, write_archive
from .dataclasses import ArchiveInfo, ChunkInfo, CompressedArchive, DecompressionResult
from .engine import ChunkedCompressor, ChunkedDecompressor, chunk_layout
from .exceptions import KangIOError, KangTruncatedError
from .lowlevel import DEFAULT_LEVEL, ZstdBackend
from .planner import DEFAULT_CHUNK_SIZE
from ._internal.numpy_utils import BytesLike, as_byte_view

logger = logging.getLogger(__name__)

HEADER_LENGTH_SIZE = 8
SOURCE_EXTENSION = ".safetensors"

# =============================================================================
# Source (weight) files
# =============================================================================

def split_source(data: BytesLike) -> Tuple[bytes, np.ndarray]:
    """
    Splits a weight file image into its header bytes and tensor payload.

    Args:
        data: The whole file: an 8-byte little-endian header length, the
              header, then the tensor bytes.

    Returns:
        (header_bytes, tensor_view) where tensor_view shares memory with `data`.

    Raises:
        KangTruncatedError: If the file is shorter than its declared header.
    """
    buffer = as_byte_view(data)
    if buffer.size < HEADER_LENGTH_SIZE:
        raise KangTruncatedError(
            f"Invalid weight file: {buffer.size} bytes is too small for the header length"
        )
    header_length = int.from_bytes(buffer[:HEADER_LENGTH_SIZE].tobytes(), "little")
    header_end = HEADER_LENGTH_SIZE + header_length
    if buffer.size < header_end:
        raise KangTruncatedError(
            f"Invalid weight file: header declares {header_length} bytes "
            f"but only {buffer.size - HEADER_LENGTH_SIZE} follow"
        )
    return buffer[HEADER_LENGTH_SIZE:header_end].tobytes(), buffer[header_end:]

def read_source(path) -> Tuple[bytes, np.ndarray]:
    """Loads a weight file from disk and splits it (see `split_source`)."""
    try:
        data = np.fromfile(path, dtype=np.uint8)
    except OSError as e:
        raise KangIOError.from_os_error(e, path) from e
    return split_source(data)

def write_source(stream: BinaryIO, header_bytes: bytes, tensor_data: BytesLike) -> int:
    """
    Writes a weight file: the recomputed header length, the header, the tensors.

    Returns:
        The number of bytes written.
    """
    tensors = as_byte_view(tensor_data)
    written = stream.write(len(header_bytes).to_bytes(HEADER_LENGTH_SIZE, "little"))
    written += stream.write(header_bytes)
    if tensors.size:
        written += stream.write(memoryview(tensors))
    return written


def _open_binary(path, mode: str) -> BinaryIO:
    try:
        return builtins.open(path, mode)
    except OSError as e:
        raise KangIOError.from_os_error(e, path) from e


def open(
    path,
    mode: str = 'r',
    *,
    level: int = DEFAULT_LEVEL,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    workers: int = 1,
    backend: Optional[CompressionBackend] = None,
) -> Union["Reader", "Writer"]:
    """
    Opens a .kang archive for reading or writing.
    This function is the primary entry point for the library.

    Args:
        path: Path to the .kang file.
        mode (str): 'r' (read-only) or 'w' (write, truncates if exists).
        level (int): For 'w' mode only. zstd compression level.
        chunk_size (int): For 'w' mode only. Tensor chunk size in bytes.
        workers (int): Number of threads used for chunk processing.
        backend: A custom `CompressionBackend`. Overrides `level`.

    Returns:
        A Reader or Writer object, typically used within a `with` statement.

    Raises:
        KangIOError: If the path cannot be opened.
        ValueError: If mode or arguments are invalid.
    """
    if mode == 'r':
        if level != DEFAULT_LEVEL or chunk_size != DEFAULT_CHUNK_SIZE:
            raise ValueError("level and chunk_size can only be provided in 'w' mode.")
        return Reader(path, backend=backend or ZstdBackend(), workers=workers)
    elif mode == 'w':
        return Writer(
            path,
            backend=backend or ZstdBackend(level),
            chunk_size=chunk_size,
            workers=workers,
        )
    else:
        raise ValueError(f"Unsupported mode: '{mode}'. Must be 'r' or 'w'.")

# =============================================================================
# Writer and Reader
# =============================================================================

class Writer(KangFileBase):
    """
    A file handle for writing a .kang archive.
    Created via `kang.open(..., mode='w')`.

    An archive holds exactly one weight file, so `write` may be called once.
    """
    def __init__(
        self,
        path,
        *,
        backend: CompressionBackend,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        workers: int = 1,
    ):
        self.path = str(path)
        self._backend = backend
        self._compressor = ChunkedCompressor(backend, chunk_size, workers=workers)
        self._stream = _open_binary(path, "wb")
        self._written = False

    def write(self, header_bytes: BytesLike, tensor_bytes: BytesLike) -> int:
        """
        Compresses a header and tensor payload and writes the archive.

        Returns:
            The archive size in bytes.
        """
        if self.closed:
            raise ValueError("Operation attempted on a closed archive.")
        if self._written:
            raise ValueError("This archive has already been written.")
        result = self._compressor.compress(header_bytes, tensor_bytes)
        try:
            size = write_archive(self._stream, CompressedArchive.from_result(result))
        except OSError as e:
            raise KangIOError.from_os_error(e, self.path) from e
        self._written = True
        logger.debug("Wrote %d chunks (%d bytes) to %s", len(result.chunk_table), size, self.path)
        return size

    def write_source(self, source: BytesLike) -> int:
        """Compresses a complete weight file image (length prefix, header, tensors)."""
        header_bytes, tensors = split_source(source)
        return self.write(header_bytes, tensors)

    def close(self) -> None:
        if not self._stream.closed:
            try:
                self._stream.close()
            finally:
                self._backend.close()

    @property
    def closed(self) -> bool:
        return self._stream.closed


class Reader(KangFileBase):
    """
    A file handle for reading a .kang archive.
    Created via `kang.open(..., mode='r')`.

    `reader[i]` decodes only chunk `i`, reading just its bytes from disk.
    """
    def __init__(self, path, *, backend: CompressionBackend, workers: int = 1):
        self.path = str(path)
        self._backend = backend
        self._decompressor = ChunkedDecompressor(backend, workers=workers)
        self._stream = _open_binary(path, "rb")

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("Operation attempted on a closed archive.")

    @cached_property
    def info(self) -> ArchiveInfo:
        """The archive framing: header size, chunk table and tensor block location."""
        self._check_open()
        self._stream.seek(0)
        return read_archive_info(self._stream)

    @cached_property
    def chunks(self) -> List[ChunkInfo]:
        """A list of `ChunkInfo` objects describing each chunk in the archive."""
        return chunk_layout(self.info.chunk_table)

    @property
    def nchunks(self) -> int:
        """The total number of chunks in the archive."""
        return self.info.num_chunks

    def __len__(self) -> int:
        return self.nchunks

    def __getitem__(self, key: int) -> np.ndarray:
        """Decodes a single chunk by index (negative indices allowed)."""
        if not isinstance(key, int):
            raise TypeError(f"Index must be an integer, not {type(key).__name__}")
        index = key if key >= 0 else key + self.nchunks
        if not (0 <= index < self.nchunks):
            raise IndexError("Chunk index out of range")

        chunk = self.chunks[index]
        self._stream.seek(self.info.tensor_block_offset + chunk.compressed_offset)
        data = self._stream.read(chunk.compressed_size)
        return self._decompressor.decompress_chunk(data, self.info.chunk_table[index], index)

    def read_archive(self) -> CompressedArchive:
        """Loads the whole archive, tensor block included."""
        self._check_open()
        self._stream.seek(0)
        return read_archive(self._stream)

    def read_header(self) -> bytes:
        """Decodes only the header."""
        self._check_open()
        size = self.info.compressed_header_size
        self._stream.seek(len(SIGNATURE) + HEADER_LENGTH_SIZE)
        compressed = self._stream.read(size)
        return self._decompressor.decompress_header(compressed)

    def read(self) -> DecompressionResult:
        """Decodes the header and the full tensor payload."""
        archive = self.read_archive()
        return self._decompressor.decompress(
            archive.compressed_header, archive.compressed_tensors, archive.chunk_table
        )

    def read_tensors(self) -> np.ndarray:
        """Decodes the full tensor payload as a flat `uint8` array."""
        return self.read().tensor_data

    def close(self) -> None:
        if not self._stream.closed:
            try:
                self._stream.close()
            finally:
                self._backend.close()

    @property
    def closed(self) -> bool:
        return self._stream.closed
