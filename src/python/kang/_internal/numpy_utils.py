# kang/_internal/numpy_utils.py

"""
Internal utilities for interacting with NumPy arrays.

This module handles validation and conversion of the various byte-like inputs
the engines accept into flat `uint8` views, plus scratch buffer allocation.
"""

from typing import Union, TypeAlias
import numpy as np

# TypeAlias for clarity in function signatures.
BytesLike: TypeAlias = Union[bytes, bytearray, memoryview, np.ndarray]

_EMPTY = np.empty(0, dtype=np.uint8)

def validate_array_for_reading(arr: np.ndarray) -> None:
    """
    Ensures a NumPy array can be reinterpreted as a flat byte buffer.

    Args:
        arr: The NumPy array to validate.

    Raises:
        ValueError: If the array is not C-contiguous.
    """
    if not arr.flags['C_CONTIGUOUS']:
        raise ValueError(
            "Array must be C-contiguous. Please call `np.ascontiguousarray(arr)` "
            "on your array before compressing."
        )

def as_byte_view(data: BytesLike) -> np.ndarray:
    """
    Returns a flat, zero-copy `uint8` view over a byte-like object.

    Args:
        data: bytes, bytearray, memoryview or a C-contiguous NumPy array of any dtype.

    Returns:
        A one-dimensional `uint8` array sharing memory with `data`.

    Raises:
        TypeError: If `data` does not expose a byte buffer.
        ValueError: If `data` is a non-contiguous array.
    """
    if isinstance(data, np.ndarray):
        validate_array_for_reading(data)
        if data.size == 0:
            return _EMPTY
        return data.reshape(-1).view(np.uint8)

    try:
        view = memoryview(data)
    except TypeError:
        raise TypeError(
            f"Expected a bytes-like object or NumPy array, not {type(data).__name__}"
        ) from None

    if view.nbytes == 0:
        return _EMPTY
    return np.frombuffer(view, dtype=np.uint8)

def allocate_scratch(size: int) -> np.ndarray:
    """Allocates an uninitialized byte buffer of `size` bytes."""
    return np.empty(size, dtype=np.uint8)
