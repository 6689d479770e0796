"""Tests for the SQLite record store."""

import time

from imgcache.cache.disk import DiskCache
from imgcache.cache.stats import CacheObject


def _obj(key: str, **kwargs) -> CacheObject:
    defaults = dict(
        url=f"https://x/{key}",
        relative_path=f"{key}.png",
        valid_till=time.time() + 60,
    )
    defaults.update(kwargs)
    return CacheObject(key=key, **defaults)


class TestDiskCache:
    def test_get_set(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            cache.set(_obj("k1", etag="abc", length=10))
            result = cache.get("k1")
            assert result is not None
            assert result.relative_path == "k1.png"
            assert result.etag == "abc"
            assert result.length == 10
        finally:
            cache.close()

    def test_get_miss(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            assert cache.get("nonexistent") is None
        finally:
            cache.close()

    def test_stale_entries_are_still_returned(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            cache.set(_obj("k1", valid_till=time.time() - 100))
            assert cache.get("k1") is not None
        finally:
            cache.close()

    def test_persists_across_connections(self, tmp_path):
        db_path = tmp_path / "cache.db"
        cache = DiskCache(db_path=db_path)
        cache.set(_obj("k1"))
        cache.close()
        reopened = DiskCache(db_path=db_path)
        try:
            assert reopened.get("k1") is not None
        finally:
            reopened.close()

    def test_delete(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            cache.set(_obj("k1"))
            assert cache.delete("k1") == 1
            assert cache.delete("k1") == 0
            assert cache.get("k1") is None
        finally:
            cache.close()

    def test_entry_count_and_size(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            assert cache.entry_count == 0
            cache.set(_obj("k1", length=1024 * 1024))
            cache.set(_obj("k2", length=1024 * 1024))
            assert cache.entry_count == 2
            assert cache.size_mb == 2.0
        finally:
            cache.close()

    def test_objects_over_capacity(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            now = time.time()
            for i in range(4):
                cache.set(_obj(f"k{i}", touched=now + i))
            to_remove = cache.get_objects_to_remove(stale_period_seconds=3600, max_objects=2)
            assert [o.key for o in to_remove] == ["k1", "k0"]
        finally:
            cache.close()

    def test_objects_past_stale_period(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            cache.set(_obj("old", touched=time.time() - 7200))
            cache.set(_obj("new"))
            to_remove = cache.get_objects_to_remove(stale_period_seconds=3600, max_objects=10)
            assert [o.key for o in to_remove] == ["old"]
        finally:
            cache.close()

    def test_clear(self, tmp_path):
        cache = DiskCache(db_path=tmp_path / "cache.db")
        try:
            cache.set(_obj("k1"))
            cache.set(_obj("k2"))
            cache.clear()
            assert cache.entry_count == 0
        finally:
            cache.close()
