# kang/types.py

"""
Core type-safe enumerations for the kang library.
"""
from enum import IntEnum

class FailureKind(IntEnum):
    """
    Enumeration of the failure categories a compress/decompress call can end with.

    Every `KangError` carries one of these so callers (and the batch
    orchestrator) can report failures uniformly.
    """
    UNKNOWN = 0

    # Framing and payload integrity
    TRUNCATED = 1
    BAD_SIGNATURE = 2
    SIZE_MISMATCH = 3

    # External collaborators
    BACKEND_ERROR = 4
    IO_ERROR = 5

    # Setup
    CONFIG_ERROR = 6


class Command(IntEnum):
    """The two directions a file can be processed in."""
    COMPRESS = 1
    DECOMPRESS = 2
