"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    DEFAULT_WORKERS,
    MAX_WORKERS,
    MIN_WORKERS,
    FetchMode,
    FetchOptions,
    GlobalConfig,
    build_fetch_options,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
    "DEFAULT_WORKERS",
    "FetchMode",
    "FetchOptions",
    "GlobalConfig",
    "MAX_WORKERS",
    "MIN_WORKERS",
    "build_fetch_options",
]
