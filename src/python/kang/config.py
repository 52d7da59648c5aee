# kang/config.py
"""
Runtime configuration: defaults, overridden by KANG_* environment variables,
overridden by explicit (command line) values.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional

from .exceptions import KangConfigError
from .lowlevel import DEFAULT_LEVEL
from .planner import DEFAULT_CHUNK_SIZE

_ENV_PREFIX = "KANG_"
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

@dataclass(frozen=True)
class KangConfig:
    """Settings shared by the file layer, the batch orchestrator and the CLI."""
    level: int = DEFAULT_LEVEL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    internal_chunk_size: Optional[int] = None
    threads: int = 0
    workers: int = 1
    log_level: str = "INFO"

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise KangConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.internal_chunk_size is not None and self.internal_chunk_size <= 0:
            raise KangConfigError(
                f"internal_chunk_size must be positive, got {self.internal_chunk_size}"
            )
        if self.threads < 0:
            raise KangConfigError(f"threads cannot be negative, got {self.threads}")
        if self.workers < 1:
            raise KangConfigError(f"workers must be at least 1, got {self.workers}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise KangConfigError(
                f"Unknown log level '{self.log_level}'. "
                f"Expected one of: {', '.join(sorted(_LOG_LEVELS))}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "KangConfig":
        """Builds a config from defaults and KANG_* environment variables."""
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in ("level", "chunk_size", "internal_chunk_size", "threads", "workers"):
            raw = environ.get(_ENV_PREFIX + name.upper())
            if raw:
                values[name] = _parse_int(_ENV_PREFIX + name.upper(), raw)
        log_level = environ.get(_ENV_PREFIX + "LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level.upper()
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "KangConfig":
        """Returns a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise KangConfigError(f"{name} must be an integer, got '{raw}'") from None
