# kang/dataclasses.py
"""
Dataclasses for structured data within the kang library.
"""
from dataclasses import dataclass, field
from typing import List

import numpy as np

from ._internal.numpy_utils import as_byte_view

@dataclass(frozen=True, slots=True)
class ChunkSpan:
    """A planned slice of the tensor payload."""
    index: int
    offset: int
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size

@dataclass(frozen=True, slots=True)
class ChunkEntry:
    """One row of the chunk table, as stored on disk."""
    original_size: int
    compressed_size: int

@dataclass(frozen=True, slots=True)
class ChunkInfo:
    """A summary of a single chunk within an archive."""
    index: int
    original_size: int
    compressed_size: int
    original_offset: int
    compressed_offset: int

    @property
    def compression_ratio(self) -> float:
        if self.original_size == 0:
            return 0.0
        return self.compressed_size / self.original_size

@dataclass(frozen=True, slots=True)
class CompressionResult:
    """Output of the chunked compression engine."""
    compressed_header: bytes
    compressed_tensors: bytes
    chunk_table: List[ChunkEntry] = field(default_factory=list)

    @property
    def original_tensor_size(self) -> int:
        return sum(entry.original_size for entry in self.chunk_table)

@dataclass(frozen=True, slots=True)
class DecompressionResult:
    """Output of the chunked decompression engine."""
    header_bytes: bytes
    tensor_data: np.ndarray  # flat uint8

@dataclass(frozen=True, slots=True)
class CompressedArchive:
    """The decoded framing of a .kang file."""
    compressed_header: bytes
    chunk_table: List[ChunkEntry]
    compressed_tensors: np.ndarray  # flat uint8, chunks back to back

    @classmethod
    def from_result(cls, result: CompressionResult) -> "CompressedArchive":
        return cls(
            compressed_header=result.compressed_header,
            chunk_table=list(result.chunk_table),
            compressed_tensors=as_byte_view(result.compressed_tensors),
        )

@dataclass(frozen=True, slots=True)
class ArchiveInfo:
    """Information extracted from the archive framing, without the tensor block."""
    compressed_header_size: int
    num_chunks: int
    tensor_block_offset: int
    tensor_block_size: int
    chunk_table: List[ChunkEntry]

    @property
    def original_tensor_size(self) -> int:
        return sum(entry.original_size for entry in self.chunk_table)

@dataclass(frozen=True, slots=True)
class ArchiveStats:
    """Details of a single file compress or decompress operation."""
    source_path: str
    target_path: str
    original_size: int
    archive_size: int
    num_chunks: int
    elapsed_seconds: float

    @property
    def compression_ratio(self) -> float:
        if self.original_size == 0:
            return 0.0
        return self.archive_size / self.original_size
