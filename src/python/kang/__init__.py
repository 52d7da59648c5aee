# kang/__init__.py
"""
Chunked, compressed archival storage for tensor weight files.
"""
__version__ = "0.1.0"

from .file import Reader, Writer, open, read_source, split_source, write_source
from .types import Command, FailureKind
from .dataclasses import (
    ArchiveInfo,
    ArchiveStats,
    ChunkEntry,
    ChunkInfo,
    ChunkSpan,
    CompressedArchive,
    CompressionResult,
    DecompressionResult,
)
from .exceptions import (
    KangError,
    KangConfigError,
    KangTruncatedError,
    KangBadSignatureError,
    KangSizeMismatchError,
    KangBackendError,
    KangIOError,
)
from .abc import CompressionBackend
from .lowlevel import ZstdBackend, DEFAULT_LEVEL
from .planner import DEFAULT_CHUNK_SIZE, count_chunks, plan_chunks
from .engine import ChunkedCompressor, ChunkedDecompressor, chunk_layout
from .container import (
    SIGNATURE,
    decode_archive,
    encode_archive,
    read_archive,
    read_archive_info,
    write_archive,
)
from .config import KangConfig
from .convenience import compress_file, decompress_file
from .batch import BatchReport, process_directory


# Define what gets imported with 'from kang import *'
__all__ = [
    'open',
    'Reader',
    'Writer',
    'read_source',
    'split_source',
    'write_source',
    'Command',
    'FailureKind',
    'ArchiveInfo',
    'ArchiveStats',
    'ChunkEntry',
    'ChunkInfo',
    'ChunkSpan',
    'CompressedArchive',
    'CompressionResult',
    'DecompressionResult',
    'KangError',
    'KangConfigError',
    'KangTruncatedError',
    'KangBadSignatureError',
    'KangSizeMismatchError',
    'KangBackendError',
    'KangIOError',
    'CompressionBackend',
    'ZstdBackend',
    'DEFAULT_LEVEL',
    'DEFAULT_CHUNK_SIZE',
    'count_chunks',
    'plan_chunks',
    'ChunkedCompressor',
    'ChunkedDecompressor',
    'chunk_layout',
    'SIGNATURE',
    'decode_archive',
    'encode_archive',
    'read_archive',
    'read_archive_info',
    'write_archive',
    'KangConfig',
    'compress_file',
    'decompress_file',
    'BatchReport',
    'process_directory',
    '__version__',
]
