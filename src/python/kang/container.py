# kang/container.py
"""
Binary framing of .kang archives.

Layout (all integers unsigned 64-bit little-endian):

    offset  field                   size
    0       signature               8 bytes, b"KANGCOMP"
    8       compressed_header_size  8 bytes
    16      compressed_header       compressed_header_size bytes
    16+N    num_chunks              8 bytes
    ...     chunk_table             num_chunks * (original_size, compressed_size)
    ...     compressed_tensors      remaining bytes to end of stream

The tensor block carries no length of its own; chunk boundaries inside it come
only from the chunk table.
"""

import io
import struct
from typing import BinaryIO, List, Tuple

import numpy as np

from .dataclasses import ArchiveInfo, ChunkEntry, CompressedArchive
from .exceptions import KangBadSignatureError, KangTruncatedError
from ._internal.numpy_utils import allocate_scratch

SIGNATURE = b"KANGCOMP"
ARCHIVE_EXTENSION = ".kang"

_U64 = struct.Struct("<Q")
_CHUNK_ENTRY = struct.Struct("<QQ")


class _Cursor:
    """Bounded reads over a seekable binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        start = stream.tell()
        self.end = stream.seek(0, io.SEEK_END)
        stream.seek(start)

    @property
    def position(self) -> int:
        return self._stream.tell()

    @property
    def remaining(self) -> int:
        return self.end - self.position

    def read_exact(self, size: int, what: str) -> bytes:
        if size > self.remaining:
            raise KangTruncatedError(
                f"Archive truncated while reading {what}: "
                f"need {size} bytes, {self.remaining} left"
            )
        data = self._stream.read(size)
        if len(data) != size:
            raise KangTruncatedError(
                f"Archive truncated while reading {what}: got {len(data)} of {size} bytes"
            )
        return data

    def read_u64(self, what: str) -> int:
        return _U64.unpack(self.read_exact(_U64.size, what))[0]

    def read_rest(self) -> np.ndarray:
        size = self.remaining
        block = allocate_scratch(size)
        if size:
            read = self._stream.readinto(block)
            if read != size:
                raise KangTruncatedError(
                    f"Archive truncated while reading tensor block: got {read} of {size} bytes"
                )
        return block


def _read_framing(cursor: _Cursor) -> Tuple[bytes, List[ChunkEntry]]:
    signature = cursor.read_exact(len(SIGNATURE), "signature")
    if signature != SIGNATURE:
        raise KangBadSignatureError(
            f"Not a valid .kang archive (signature {signature!r}, expected {SIGNATURE!r})"
        )

    header_size = cursor.read_u64("compressed header size")
    compressed_header = cursor.read_exact(header_size, "compressed header")

    num_chunks = cursor.read_u64("chunk count")
    table_bytes = cursor.read_exact(num_chunks * _CHUNK_ENTRY.size, "chunk table")
    chunk_table = [
        ChunkEntry(original_size=original, compressed_size=compressed)
        for original, compressed in _CHUNK_ENTRY.iter_unpack(table_bytes)
    ]
    return compressed_header, chunk_table


def write_archive(stream: BinaryIO, archive: CompressedArchive) -> int:
    """
    Writes an archive to a binary stream.

    Returns:
        The number of bytes written.
    """
    written = stream.write(SIGNATURE)
    written += stream.write(_U64.pack(len(archive.compressed_header)))
    written += stream.write(archive.compressed_header)
    written += stream.write(_U64.pack(len(archive.chunk_table)))
    for entry in archive.chunk_table:
        written += stream.write(_CHUNK_ENTRY.pack(entry.original_size, entry.compressed_size))
    if len(archive.compressed_tensors):
        written += stream.write(memoryview(archive.compressed_tensors))
    return written


def read_archive(stream: BinaryIO) -> CompressedArchive:
    """
    Reads a complete archive from a seekable binary stream.

    Raises:
        KangBadSignatureError: If the signature does not match.
        KangTruncatedError: If the stream ends inside the framing.
    """
    cursor = _Cursor(stream)
    compressed_header, chunk_table = _read_framing(cursor)
    return CompressedArchive(
        compressed_header=compressed_header,
        chunk_table=chunk_table,
        compressed_tensors=cursor.read_rest(),
    )


def read_archive_info(stream: BinaryIO) -> ArchiveInfo:
    """Reads only the framing of an archive; the tensor block is not loaded."""
    cursor = _Cursor(stream)
    compressed_header, chunk_table = _read_framing(cursor)
    return ArchiveInfo(
        compressed_header_size=len(compressed_header),
        num_chunks=len(chunk_table),
        tensor_block_offset=cursor.position,
        tensor_block_size=cursor.remaining,
        chunk_table=chunk_table,
    )


def encode_archive(archive: CompressedArchive) -> bytes:
    """Serializes an archive to bytes."""
    buffer = io.BytesIO()
    write_archive(buffer, archive)
    return buffer.getvalue()


def decode_archive(data: bytes) -> CompressedArchive:
    """Parses an archive held in memory."""
    return read_archive(io.BytesIO(data))
