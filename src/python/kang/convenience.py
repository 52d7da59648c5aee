# kang/convenience.py
"""
High-level convenience functions for converting single files.
"""
import builtins
import logging
import os
import time
from typing import Optional

from . import file as kang_file
from .config import KangConfig
from .container import read_archive
from .dataclasses import ArchiveStats
from .engine import ChunkedDecompressor
from .exceptions import KangIOError
from .lowlevel import ZstdBackend
from .planner import count_chunks

logger = logging.getLogger(__name__)

def _make_backend(config: KangConfig) -> ZstdBackend:
    return ZstdBackend(
        config.level,
        internal_chunk_size=config.internal_chunk_size,
        threads=config.threads,
    )

def _remove_partial(path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove partial output %s: %s", path, e)

def compress_file(
    input_path,
    output_path,
    *,
    level: Optional[int] = None,
    chunk_size: Optional[int] = None,
    workers: Optional[int] = None,
    config: Optional[KangConfig] = None,
) -> ArchiveStats:
    """
    Compresses a single weight file into a .kang archive.

    This is a high-level wrapper for the most common write operation.

    Args:
        input_path: The weight file to read.
        output_path: The archive to create (truncated if it exists).
        level: (Optional) zstd compression level. Overrides `config`.
        chunk_size: (Optional) Tensor chunk size in bytes. Overrides `config`.
        workers: (Optional) Threads used for chunk compression. Overrides `config`.
        config: (Optional) Base settings; defaults to `KangConfig()`.

    Returns:
        An `ArchiveStats` describing the conversion.
    """
    config = (config or KangConfig()).with_overrides(
        level=level, chunk_size=chunk_size, workers=workers
    )
    logger.info("Compressing %s -> %s", input_path, output_path)
    start = time.perf_counter()

    header_bytes, tensors = kang_file.read_source(input_path)
    original_size = kang_file.HEADER_LENGTH_SIZE + len(header_bytes) + tensors.size

    writer = kang_file.Writer(
        output_path,
        backend=_make_backend(config),
        chunk_size=config.chunk_size,
        workers=config.workers,
    )
    try:
        with writer:
            archive_size = writer.write(header_bytes, tensors)
    except BaseException:
        _remove_partial(output_path)
        raise

    stats = ArchiveStats(
        source_path=str(input_path),
        target_path=str(output_path),
        original_size=original_size,
        archive_size=archive_size,
        num_chunks=count_chunks(tensors.size, config.chunk_size),
        elapsed_seconds=time.perf_counter() - start,
    )
    logger.info(
        "Compression successful! %d -> %d bytes (ratio %.3f, %d chunks) in %.2f seconds.",
        stats.original_size, stats.archive_size, stats.compression_ratio,
        stats.num_chunks, stats.elapsed_seconds,
    )
    return stats

def decompress_file(
    input_path,
    output_path,
    *,
    workers: Optional[int] = None,
    config: Optional[KangConfig] = None,
) -> ArchiveStats:
    """
    Restores a weight file from a .kang archive.

    This is a high-level wrapper for the most common read operation.

    Args:
        input_path: The archive to read.
        output_path: The weight file to create (truncated if it exists).
        workers: (Optional) Threads used for chunk decompression. Overrides `config`.
        config: (Optional) Base settings; defaults to `KangConfig()`.

    Returns:
        An `ArchiveStats` describing the conversion.

    Raises:
        KangBadSignatureError, KangTruncatedError, KangSizeMismatchError,
        KangBackendError: If the archive is invalid. No output is left behind.
    """
    config = (config or KangConfig()).with_overrides(workers=workers)
    logger.info("Decompressing %s -> %s", input_path, output_path)
    start = time.perf_counter()

    try:
        with builtins.open(input_path, "rb") as stream:
            archive = read_archive(stream)
            archive_size = stream.tell()
    except OSError as e:
        raise KangIOError.from_os_error(e, input_path) from e

    with _make_backend(config) as backend:
        result = ChunkedDecompressor(backend, workers=config.workers).decompress(
            archive.compressed_header, archive.compressed_tensors, archive.chunk_table
        )

    try:
        with builtins.open(output_path, "wb") as stream:
            original_size = kang_file.write_source(stream, result.header_bytes, result.tensor_data)
    except OSError as e:
        _remove_partial(output_path)
        raise KangIOError.from_os_error(e, output_path) from e

    stats = ArchiveStats(
        source_path=str(input_path),
        target_path=str(output_path),
        original_size=original_size,
        archive_size=archive_size,
        num_chunks=len(archive.chunk_table),
        elapsed_seconds=time.perf_counter() - start,
    )
    logger.info(
        "Decompression successful! %d -> %d bytes (%d chunks) in %.2f seconds.",
        stats.archive_size, stats.original_size, stats.num_chunks, stats.elapsed_seconds,
    )
    return stats
