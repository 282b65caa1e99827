"""Logging setup for the approval server.

The server logs to stdout like any long-running service; the hook configures
its own stderr logging in ``hook.logging_config``.
"""

import logging
import os
import sys
import time
from contextlib import contextmanager
from typing import Generator, Optional, TextIO

# Log format constants
SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)

# Environment variable names
LOG_LEVEL_ENV = "LOG_LEVEL"

# Default values
DEFAULT_LOG_LEVEL = "INFO"

NOISY_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websockets": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "uvicorn.error": logging.INFO,
}


def _resolve_level(level: Optional[str], default: str) -> int:
    level_name = (level or os.environ.get(LOG_LEVEL_ENV) or default).upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Configure logging for the approval server.

    Args:
        level: Log level override. If not provided, uses LOG_LEVEL env var or INFO.
        stream: Where to write records (default: stdout).
    """
    log_level = _resolve_level(level, DEFAULT_LOG_LEVEL)

    # Use simple format for INFO+, detailed format with line numbers for DEBUG
    fmt = DETAILED_FORMAT if log_level == logging.DEBUG else SIMPLE_FORMAT

    logging.basicConfig(
        level=log_level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=stream or sys.stdout,
        force=True,
    )

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(noisy_level, log_level))


@contextmanager
def log_timing(
    logger: logging.Logger, operation: str, level: int = logging.DEBUG
) -> Generator[None, None, None]:
    """Context manager for timing operations.

    Example:
        with log_timing(logger, "Discord send"):
            await client.post(...)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.log(level, "%s completed in %.1fms", operation, duration_ms)
