# kang/engine.py
"""
Chunked compression and decompression engines.

The compressor splits the tensor payload into fixed-size chunks, stages each
chunk in one reusable scratch buffer and hands it to the backend, recording an
`(original_size, compressed_size)` pair per chunk. The decompressor walks the
compressed block using only those recorded sizes, checks every chunk's
declared size against the table before trusting the backend's output, and
assembles the tensor payload in a single preallocated buffer.

Chunks are independent, so both engines can spread them over a thread pool
(`workers > 1`); each worker then owns its own backend and scratch buffers and
the results keep their production order.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .abc import CompressionBackend
from .dataclasses import (
    ChunkEntry,
    ChunkInfo,
    ChunkSpan,
    CompressionResult,
    DecompressionResult,
)
from .exceptions import KangConfigError, KangSizeMismatchError, KangTruncatedError
from .planner import DEFAULT_CHUNK_SIZE, plan_chunks
from ._internal.numpy_utils import BytesLike, allocate_scratch, as_byte_view
from ._internal.workers import run_ordered

logger = logging.getLogger(__name__)


def chunk_layout(chunk_table: Sequence[ChunkEntry]) -> List[ChunkInfo]:
    """
    Derives each chunk's position from the table alone.

    Offsets are running sums of the recorded sizes, in table order.
    """
    layout = []
    original_offset = 0
    compressed_offset = 0
    for index, entry in enumerate(chunk_table):
        layout.append(ChunkInfo(
            index=index,
            original_size=entry.original_size,
            compressed_size=entry.compressed_size,
            original_offset=original_offset,
            compressed_offset=compressed_offset,
        ))
        original_offset += entry.original_size
        compressed_offset += entry.compressed_size
    return layout


def _validate_workers(workers: int) -> None:
    if not isinstance(workers, int) or workers < 1:
        raise KangConfigError(f"workers must be a positive integer, got {workers!r}")


def _allocate(size: int, what: str, chunk_index: Optional[int] = None) -> np.ndarray:
    """Allocates a buffer whose size comes from archive data."""
    try:
        return allocate_scratch(size)
    except (MemoryError, ValueError) as e:
        raise KangSizeMismatchError(
            f"Cannot allocate {size} bytes for {what}: {e}",
            expected=size,
            actual=0,
            chunk_index=chunk_index,
        ) from e


class ChunkedCompressor:
    """
    Drives a `CompressionBackend` over a header and a chunked tensor payload.

    Usage:
        with ZstdBackend(level=10) as backend:
            result = ChunkedCompressor(backend).compress(header, tensors)
    """
    def __init__(
        self,
        backend: CompressionBackend,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        *,
        workers: int = 1,
    ):
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise KangConfigError(f"chunk_size must be a positive integer, got {chunk_size!r}")
        _validate_workers(workers)
        self._backend = backend
        self.chunk_size = chunk_size
        self.workers = workers

    def compress_header(self, header_bytes: BytesLike) -> bytes:
        """Compresses the header; an empty header is never sent to the backend."""
        header = as_byte_view(header_bytes)
        if header.size == 0:
            return b""
        return self._backend.compress(header)

    def compress(self, header_bytes: BytesLike, tensor_bytes: BytesLike) -> CompressionResult:
        """
        Compresses a header and its tensor payload.

        Args:
            header_bytes: The raw header blob.
            tensor_bytes: The raw tensor payload. bytes-like or a C-contiguous
                NumPy array.

        Returns:
            A `CompressionResult` holding the compressed header, the
            concatenated compressed chunks and the chunk table.

        Raises:
            KangBackendError: If the backend fails on any chunk. Nothing is
                returned in that case.
        """
        compressed_header = self.compress_header(header_bytes)
        tensors = as_byte_view(tensor_bytes)
        spans = plan_chunks(tensors.size, self.chunk_size)
        if not spans:
            return CompressionResult(compressed_header, b"", [])

        if self.workers > 1 and len(spans) > 1:
            pieces = self._compress_parallel(tensors, spans)
        else:
            pieces = self._compress_sequential(tensors, spans)

        pieces = list(pieces)
        table = [
            ChunkEntry(original_size=span.size, compressed_size=len(piece))
            for span, piece in zip(spans, pieces)
        ]
        block = b"".join(pieces)

        logger.debug(
            "Compressed %d bytes in %d chunks to %d bytes",
            tensors.size, len(table), len(block),
        )
        return CompressionResult(compressed_header, block, table)

    @staticmethod
    def _compress_span(
        backend: CompressionBackend,
        scratch: np.ndarray,
        tensors: np.ndarray,
        span: ChunkSpan,
    ) -> bytes:
        staged = scratch[:span.size]
        np.copyto(staged, tensors[span.offset:span.end])
        piece = backend.compress(staged)
        logger.debug("chunk %d: %d -> %d bytes", span.index, span.size, len(piece))
        return piece

    def _compress_sequential(self, tensors: np.ndarray, spans: List[ChunkSpan]):
        scratch = allocate_scratch(max(span.size for span in spans))
        for span in spans:
            yield self._compress_span(self._backend, scratch, tensors, span)

    def _compress_parallel(self, tensors: np.ndarray, spans: List[ChunkSpan]) -> List[bytes]:
        scratch_size = max(span.size for span in spans)

        def make_state():
            return self._backend.spawn(), allocate_scratch(scratch_size)

        def job(state, span: ChunkSpan) -> bytes:
            backend, scratch = state
            return self._compress_span(backend, scratch, tensors, span)

        return run_ordered(spans, job, make_state, lambda state: state[0].close(), self.workers)


class ChunkedDecompressor:
    """
    Rebuilds a header and tensor payload from compressed bytes and a chunk table.

    Usage:
        with ZstdBackend() as backend:
            result = ChunkedDecompressor(backend).decompress(
                archive.compressed_header, archive.compressed_tensors, archive.chunk_table
            )
    """
    def __init__(self, backend: CompressionBackend, *, workers: int = 1):
        _validate_workers(workers)
        self._backend = backend
        self.workers = workers

    def decompress_header(self, compressed_header: BytesLike) -> bytes:
        """
        Decodes the header. Its length is whatever the compressed frame
        declares; an empty input decodes to an empty header.
        """
        staged = as_byte_view(compressed_header)
        if staged.size == 0:
            return b""
        declared = self._backend.decompressed_size(staged)
        out = _allocate(declared, "the header")
        written = self._backend.decompress_into(staged, out)
        if written != declared:
            raise KangSizeMismatchError(
                f"Header decoded to {written} bytes but its frame declares {declared}",
                expected=declared,
                actual=written,
            )
        return out.tobytes()

    def decompress(
        self,
        compressed_header: BytesLike,
        compressed_tensors: BytesLike,
        chunk_table: Sequence[ChunkEntry],
    ) -> DecompressionResult:
        """
        Decompresses a header and its chunked tensor payload.

        Every chunk's declared size is checked against the table before any
        output buffer is allocated.

        Args:
            compressed_header: The compressed header, possibly empty.
            compressed_tensors: The concatenated compressed chunks.
            chunk_table: The per-chunk sizes, in production order.

        Returns:
            A `DecompressionResult` with the header bytes and a flat `uint8`
            array holding the tensor payload.

        Raises:
            KangTruncatedError: If the block is shorter than the table describes.
            KangSizeMismatchError: If the block is longer than the table
                describes, or a chunk declares or decodes to a size other than
                recorded.
            KangBackendError: If the backend fails on any chunk.
        """
        header = self.decompress_header(compressed_header)
        block = as_byte_view(compressed_tensors)
        layout = chunk_layout(chunk_table)
        self._check_block(block, layout)
        if not layout:
            return DecompressionResult(header, allocate_scratch(0))

        for info in layout:
            start = info.compressed_offset
            self._check_declared(self._backend, block[start:start + info.compressed_size], info)

        total_original = sum(info.original_size for info in layout)
        max_original = max(info.original_size for info in layout)
        max_compressed = max(info.compressed_size for info in layout)
        output = _allocate(total_original, "the tensor payload")

        if self.workers > 1 and len(layout) > 1:
            def make_state():
                return (
                    self._backend.spawn(),
                    allocate_scratch(max_compressed),
                    _allocate(max_original, "a chunk"),
                )

            def job(state, info: ChunkInfo) -> None:
                self._decompress_chunk(*state, block, output, info)

            run_ordered(layout, job, make_state, lambda state: state[0].close(), self.workers)
        else:
            compressed_scratch = allocate_scratch(max_compressed)
            original_scratch = _allocate(max_original, "a chunk")
            for info in layout:
                self._decompress_chunk(
                    self._backend, compressed_scratch, original_scratch, block, output, info
                )

        logger.debug(
            "Decompressed %d chunks from %d to %d bytes",
            len(layout), block.size, total_original,
        )
        return DecompressionResult(header, output)

    def decompress_chunk(
        self,
        compressed_chunk: BytesLike,
        entry: ChunkEntry,
        index: int = 0,
    ) -> np.ndarray:
        """
        Decodes one chunk on its own, given its bytes and its table entry.

        Chunks share no state, so any chunk can be decoded without the others.
        """
        staged = as_byte_view(compressed_chunk)
        if staged.size != entry.compressed_size:
            raise KangTruncatedError(
                f"Chunk {index} holds {staged.size} bytes, "
                f"chunk table records {entry.compressed_size}"
            )
        info = ChunkInfo(index, entry.original_size, entry.compressed_size, 0, 0)
        self._check_declared(self._backend, staged, info)
        output = _allocate(entry.original_size, f"chunk {index}", index)
        self._decompress_chunk(
            self._backend,
            allocate_scratch(entry.compressed_size),
            allocate_scratch(entry.original_size),
            staged,
            output,
            info,
        )
        return output

    @staticmethod
    def _check_block(block: np.ndarray, layout: List[ChunkInfo]) -> None:
        described = sum(info.compressed_size for info in layout)
        if block.size < described:
            raise KangTruncatedError(
                f"Tensor block holds {block.size} bytes but the chunk table describes {described}"
            )
        if block.size > described:
            raise KangSizeMismatchError(
                f"Tensor block holds {block.size} bytes but the chunk table describes {described}",
                expected=described,
                actual=block.size,
            )

    @staticmethod
    def _check_declared(backend: CompressionBackend, data: np.ndarray, info: ChunkInfo) -> None:
        # Reads the frame header only.
        declared = backend.decompressed_size(data)
        if declared != info.original_size:
            raise KangSizeMismatchError(
                f"Chunk {info.index} declares {declared} bytes, "
                f"chunk table records {info.original_size}",
                expected=info.original_size,
                actual=declared,
                chunk_index=info.index,
            )

    @staticmethod
    def _decompress_chunk(
        backend: CompressionBackend,
        compressed_scratch: np.ndarray,
        original_scratch: np.ndarray,
        block: np.ndarray,
        output: np.ndarray,
        info: ChunkInfo,
    ) -> None:
        staged = compressed_scratch[:info.compressed_size]
        start = info.compressed_offset
        np.copyto(staged, block[start:start + info.compressed_size])

        decoded = original_scratch[:info.original_size]
        written = backend.decompress_into(staged, decoded)
        if written != info.original_size:
            raise KangSizeMismatchError(
                f"Chunk {info.index} decoded to {written} bytes, "
                f"chunk table records {info.original_size}",
                expected=info.original_size,
                actual=written,
                chunk_index=info.index,
            )

        output[info.original_offset:info.original_offset + info.original_size] = decoded
        logger.debug("chunk %d: %d -> %d bytes", info.index, info.compressed_size, written)
