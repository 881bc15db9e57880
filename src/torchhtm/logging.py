"""
Logging utilities for torchhtm.

Provides consistent logging and error handling across the library.
"""

import logging
import sys
from functools import wraps

# Configure torchhtm logger
logger = logging.getLogger("torchhtm")
logger.setLevel(logging.INFO)

# Create console handler if none exists
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def log_errors(func):
    """Decorator to log exceptions before re-raising."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in {func.__name__}: {str(e)}")
            raise

    return wrapper


def log_performance(func):
    """Decorator to log performance metrics."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        import time

        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        end_time = time.perf_counter()
        logger.debug(
            f"{func.__name__} completed in {(end_time - start_time) * 1000:.2f}ms"
        )
        return result

    return wrapper


def set_log_level(level: str):
    """Set logging level for torchhtm."""
    logger.setLevel(_LEVEL_MAP.get(level.upper(), logging.INFO))


def is_valid_log_level(level: str) -> bool:
    return level.upper() in _LEVEL_MAP


def log_range_compaction(mode: str, before: int, after: int, max_ranges: int):
    """Log range-set compaction triggered by a range budget."""
    logger.debug(
        f"Compacted {mode} ranges from {before} to {after} (max_ranges={max_ranges})"
    )


def log_search_stats(mode: str, level: int, visited: int, ranges: int):
    """Log trixel visit counts for a single region search."""
    logger.debug(
        f"HTM {mode} search at level {level} visited {visited} trixels, produced {ranges} ranges"
    )
