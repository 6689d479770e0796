"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Default store settings
DEFAULT_CACHE_KEY = "libCachedImageData"
DEFAULT_CACHE_DIR = Path.home() / ".imgcache"
DEFAULT_STALE_PERIOD_DAYS = 30.0
DEFAULT_MAX_NR_OF_CACHE_OBJECTS = 200
DEFAULT_MEMORY_CACHE_OBJECTS = 100
DEFAULT_MAX_AGE_DAYS = 30.0

# Default concurrency settings
DEFAULT_CONCURRENT_FETCHES = 10
DEFAULT_RESIZE_WORKERS = 4

# Default HTTP settings
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_VALID_DAYS = 7

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "cache_key": DEFAULT_CACHE_KEY,
        "cache_dir": DEFAULT_CACHE_DIR,
        "stale_period_days": DEFAULT_STALE_PERIOD_DAYS,
        "max_nr_of_cache_objects": DEFAULT_MAX_NR_OF_CACHE_OBJECTS,
        "memory_cache_objects": DEFAULT_MEMORY_CACHE_OBJECTS,
        "default_max_age_days": DEFAULT_MAX_AGE_DAYS,
        "concurrent_fetches": DEFAULT_CONCURRENT_FETCHES,
        "resize_workers": DEFAULT_RESIZE_WORKERS,
        "request_timeout": DEFAULT_REQUEST_TIMEOUT,
        "log_level": DEFAULT_LOG_LEVEL,
    }
