"""
Pixelization configuration for torchhtm.

Defaults suit catalog indexing at roughly arcsecond resolution and can be
overridden from the environment for batch and service deployments.
"""

import os
from typing import Any, Dict, Optional

from .logging import is_valid_log_level, set_log_level
from .sphere.trixel import MAX_LEVEL

_ENV_LEVEL = "TORCHHTM_LEVEL"
_ENV_MAX_RANGES = "TORCHHTM_MAX_RANGES"
_ENV_LOG_LEVEL = "TORCHHTM_LOG_LEVEL"


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


class PixelizationConfig:
    """Settings shared by HTM pixelizations built through `from_config`."""

    def __init__(self, level: int = 20, max_ranges: int = 0, log_level: str = "INFO"):
        if isinstance(level, bool) or not isinstance(level, int) or level < 0 or level > MAX_LEVEL:
            raise ValueError("Invalid HTM subdivision level")
        if isinstance(max_ranges, bool) or not isinstance(max_ranges, int) or max_ranges < 0:
            raise ValueError("max_ranges must be a non-negative integer (0 means unbounded)")
        if not is_valid_log_level(log_level):
            raise ValueError(f"unknown log level {log_level!r}")
        self.level = level
        self.max_ranges = max_ranges
        self.log_level = log_level.upper()

    @classmethod
    def from_env(cls, defaults: Optional["PixelizationConfig"] = None) -> "PixelizationConfig":
        """Build a configuration, letting TORCHHTM_* variables override defaults."""
        base = defaults or cls()
        return cls(
            level=_int_from_env(_ENV_LEVEL, base.level),
            max_ranges=_int_from_env(_ENV_MAX_RANGES, base.max_ranges),
            log_level=os.environ.get(_ENV_LOG_LEVEL, base.log_level).strip() or base.log_level,
        )

    def apply(self) -> None:
        """Push process-wide settings (currently the log level) into effect."""
        set_log_level(self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "max_ranges": self.max_ranges,
            "log_level": self.log_level,
        }

    def __repr__(self) -> str:
        return (
            f"PixelizationConfig(level={self.level}, max_ranges={self.max_ranges}, "
            f"log_level={self.log_level!r})"
        )
