"""Cache subsystem — keyed file store with memory + SQLite record tiers."""

from imgcache.cache.keys import build_derived_key, new_relative_path
from imgcache.cache.stats import CacheObject, CacheStats
from imgcache.cache.store import CacheStore

__all__ = [
    "CacheStore",
    "CacheObject",
    "CacheStats",
    "build_derived_key",
    "new_relative_path",
]
