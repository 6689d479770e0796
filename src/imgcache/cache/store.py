"""Cache store — cache records in L1 (memory) and L2 (SQLite), files on disk."""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from imgcache.cache.disk import DiskCache
from imgcache.cache.memory import MemoryCache
from imgcache.cache.stats import CacheObject, CacheStats
from imgcache.errors.exceptions import StoreError

logger = logging.getLogger(__name__)

_DEFAULT_CACHE_DIR = Path.home() / ".imgcache"
_SECONDS_PER_DAY = 24 * 3600


class CacheStore:
    """Keyed file cache: records in L1 memory → L2 SQLite, bytes under a directory."""

    def __init__(
        self,
        cache_dir: Path | None = None,
        cache_key: str = "libCachedImageData",
        memory_max_objects: int = 100,
        max_nr_of_cache_objects: int = 200,
        stale_period_days: float = 30,
        db_path: Path | None = None,
    ) -> None:
        base_dir = cache_dir or _DEFAULT_CACHE_DIR
        self._directory = base_dir / cache_key
        self._directory.mkdir(parents=True, exist_ok=True)
        self._max_objects = max_nr_of_cache_objects
        self._stale_period_seconds = stale_period_days * _SECONDS_PER_DAY
        self._l1 = MemoryCache(max_objects=memory_max_objects)
        self._l2 = DiskCache(db_path=db_path or base_dir / f"{cache_key}.db")
        self._stats = CacheStats()

    @property
    def directory(self) -> Path:
        return self._directory

    def file_path(self, obj: CacheObject) -> Path:
        return self._directory / obj.relative_path

    def retrieve_cache_data(
        self, key: str, ignore_memory_cache: bool = False
    ) -> CacheObject | None:
        """Look up a record. L1 first (unless ignored), then L2 with promotion."""
        if not ignore_memory_cache:
            obj = self._l1.get(key)
            if obj is not None:
                self._stats.hits += 1
                return obj

        obj = self._l2.get(key)
        if obj is not None:
            self._l1.set(key, obj)
            self._stats.hits += 1
            return obj

        self._stats.misses += 1
        return None

    def get_cached_from_memory(self, key: str) -> CacheObject | None:
        return self._l1.get(key)

    def put_file(self, obj: CacheObject) -> None:
        """Record ``obj`` in both tiers, then drop whatever is over capacity."""
        obj = obj.model_copy(update={"touched": time.time()})
        try:
            self._l2.set(obj)
        except sqlite3.Error as e:
            raise StoreError(
                f"Failed to record cache object '{obj.key}': {e}", key=obj.key, original=e
            ) from e
        self._l1.set(obj.key, obj)
        self.clean_cache()

    def remove_cache_file(self, obj: CacheObject) -> None:
        self._l1.remove(obj.key)
        self._l2.delete(obj.key)
        self.file_path(obj).unlink(missing_ok=True)

    def clean_cache(self) -> int:
        """Remove stale and over-capacity objects. Returns count removed."""
        to_remove = self._l2.get_objects_to_remove(
            self._stale_period_seconds, self._max_objects
        )
        for obj in to_remove:
            logger.debug("Evicting cache object %s", obj.key)
            self.remove_cache_file(obj)
        return len(to_remove)

    def empty_cache(self) -> None:
        """Remove every cached file and record."""
        for obj in self._l2.get_all():
            self.file_path(obj).unlink(missing_ok=True)
        self._l2.clear()
        self._l1.clear()
        self._stats = CacheStats()

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=self._l2.entry_count,
            size_mb=self._l2.size_mb,
            hits=self._stats.hits,
            misses=self._stats.misses,
        )

    def close(self) -> None:
        self._l2.close()
