"""L1 in-memory LRU of cache records."""

from __future__ import annotations

from collections import OrderedDict

from imgcache.cache.stats import CacheObject

_DEFAULT_MAX_OBJECTS = 100


class MemoryCache:
    """In-memory LRU of CacheObject records with count-based eviction."""

    def __init__(self, max_objects: int = _DEFAULT_MAX_OBJECTS) -> None:
        self._store: OrderedDict[str, CacheObject] = OrderedDict()
        self._max_objects = max_objects

    def get(self, key: str) -> CacheObject | None:
        obj = self._store.get(key)
        if obj is None:
            return None
        # Move to end (most recently used)
        self._store.move_to_end(key)
        return obj

    def set(self, key: str, obj: CacheObject) -> None:
        if key in self._store:
            del self._store[key]
        while len(self._store) >= self._max_objects and self._store:
            self._store.popitem(last=False)
        self._store[key] = obj

    def remove(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)
