# kang/planner.py
"""
Splits a tensor payload into fixed-size chunks.

Every chunk has `chunk_size` bytes except possibly the last one. The plan is
only used on the compression side: the archive stores each chunk's sizes, so
decoding never needs to know which chunk size was used.
"""
from typing import List

from .dataclasses import ChunkSpan
from .exceptions import KangConfigError

DEFAULT_CHUNK_SIZE = 64 * 1024 * 1024

def _validate(payload_size: int, chunk_size: int) -> None:
    if chunk_size <= 0:
        raise KangConfigError(f"chunk_size must be a positive integer, got {chunk_size}")
    if payload_size < 0:
        raise KangConfigError(f"payload_size cannot be negative, got {payload_size}")

def count_chunks(payload_size: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Returns ceil(payload_size / chunk_size); zero for an empty payload."""
    _validate(payload_size, chunk_size)
    return -(-payload_size // chunk_size)

def plan_chunks(payload_size: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[ChunkSpan]:
    """
    Computes the ordered chunk boundaries for a payload.

    Args:
        payload_size: Number of bytes to split.
        chunk_size: Nominal size of each chunk.

    Returns:
        A list of `ChunkSpan`, chunk 0 first. An empty payload yields an
        empty list, never a single empty chunk.

    Raises:
        KangConfigError: If chunk_size is not positive or payload_size is negative.
    """
    num_chunks = count_chunks(payload_size, chunk_size)
    spans = []
    for index in range(num_chunks):
        offset = index * chunk_size
        spans.append(ChunkSpan(
            index=index,
            offset=offset,
            size=min(chunk_size, payload_size - offset),
        ))
    return spans
