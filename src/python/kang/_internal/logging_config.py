# kang/_internal/logging_config.py

"""
Logging setup for the command line entry point.

The library itself only creates module loggers; handlers are attached here.
"""

import logging
import os
import sys
from typing import Optional

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logging(log_level: Optional[str] = None, name: str = "kang") -> logging.Logger:
    """
    Set up logging for the package logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to the
            KANG_LOG_LEVEL environment variable, then INFO.
        name: Logger to configure.

    Returns:
        The configured logger.
    """
    if log_level is None:
        log_level = os.getenv('KANG_LOG_LEVEL', 'INFO')
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    for old in list(logger.handlers):
        logger.removeHandler(old)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))

    logger.addHandler(handler)
    logger.propagate = False

    return logger
