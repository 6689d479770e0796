"""Base cache manager: serve remote files from the store, download when missing or stale."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

from imgcache.cache.keys import new_relative_path
from imgcache.cache.stats import CacheObject, CacheStats
from imgcache.cache.store import CacheStore
from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.config.hierarchy import load_config
from imgcache.config.schema import CacheConfig
from imgcache.errors.exceptions import HttpFetchError, ImgCacheError, StoreError
from imgcache.fetch.client import HttpFileService
from imgcache.fetch.helper import WebHelper
from imgcache.types import DownloadProgress, FileInfo, FileResponse, FileSource

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 3600


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


class CacheManager:
    """Remote file cache with full lifecycle control."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        store: CacheStore | None = None,
        file_service: HttpFileService | None = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._store = store or CacheStore(
            cache_dir=self._config.cache_dir,
            cache_key=self._config.cache_key,
            memory_max_objects=self._config.memory_cache_objects,
            max_nr_of_cache_objects=self._config.max_nr_of_cache_objects,
            stale_period_days=self._config.stale_period_days,
        )
        self._web_helper = WebHelper(
            self._store,
            file_service or HttpFileService(timeout=self._config.request_timeout),
            concurrent_fetches=self._config.concurrent_fetches,
        )
        self._io_pool = ConcurrencyPool(max_workers=self._config.resize_workers)
        self._background: set[asyncio.Task[None]] = set()

    @classmethod
    def from_config(cls, **overrides: Any) -> CacheManager:
        """Build a manager from the config hierarchy plus runtime overrides."""
        return cls(config=load_config(**overrides))

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def web_helper(self) -> WebHelper:
        return self._web_helper

    async def get_single_file(
        self,
        url: str,
        key: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> FileInfo:
        """Return the cached file, downloading it first if it is not cached.

        A stale cached file is returned as is while a refresh runs in the
        background.
        """
        key = key or url
        cached = await self.get_file_from_cache(key)
        if cached is not None:
            if not cached.is_fresh:
                self._refresh_in_background(url, key, headers)
            return cached
        return await self.download_file(url, key=key, headers=headers)

    async def get_file_stream(
        self,
        url: str,
        key: str | None = None,
        headers: dict[str, str] | None = None,
        with_progress: bool = False,
    ) -> AsyncIterator[FileResponse]:
        """Yield the cached file first (if any), then a fresh download if needed.

        Progress is only yielded when requested and nothing was served from
        the cache. If a stale file was already served, a failed refresh is
        logged rather than raised.
        """
        key = key or url
        cached = await self.get_file_from_cache(key)
        if cached is not None:
            yield cached
            if cached.is_fresh:
                return
            with_progress = False

        try:
            async for response in self._web_helper.download_file(url, key=key, headers=headers):
                if isinstance(response, DownloadProgress) and not with_progress:
                    continue
                yield response
        except ImgCacheError as e:
            if cached is None:
                raise
            logger.warning("Failed to refresh stale file %s: %s", url, e)

    async def download_file(
        self,
        url: str,
        key: str | None = None,
        headers: dict[str, str] | None = None,
        force: bool = False,
    ) -> FileInfo:
        """Download the file into the cache and return it.

        ``force`` starts a new download even if one for the key is running.
        """
        result: FileInfo | None = None
        async for response in self._web_helper.download_file(
            url, key=key, headers=headers, ignore_memory_cache=force
        ):
            if isinstance(response, FileInfo):
                result = response
        if result is None:
            raise HttpFetchError("Download finished without a file", url=url)
        return result

    async def get_file_from_cache(
        self, key: str, ignore_memory_cache: bool = False
    ) -> FileInfo | None:
        """The cached entry for ``key`` if its file still exists on disk."""
        obj = self._store.retrieve_cache_data(key, ignore_memory_cache=ignore_memory_cache)
        return self._to_file_info(obj)

    def get_file_from_memory(self, key: str) -> FileInfo | None:
        return self._to_file_info(self._store.get_cached_from_memory(key))

    async def put_file(
        self,
        url: str,
        file_bytes: bytes,
        key: str | None = None,
        max_age: float | None = None,
        etag: str | None = None,
        file_extension: str = "file",
    ) -> Path:
        """Store ``file_bytes`` under ``key`` (default ``url``), valid for ``max_age`` seconds."""
        key = key or url
        if max_age is None:
            max_age = self._config.default_max_age_days * _SECONDS_PER_DAY
        valid_till = time.time() + max_age

        obj = self._store.retrieve_cache_data(key)
        if obj is None:
            obj = CacheObject(
                key=key,
                url=url,
                relative_path=new_relative_path(file_extension),
                valid_till=valid_till,
                etag=etag,
            )
        else:
            obj = obj.model_copy(
                update={"url": url, "valid_till": valid_till, "etag": etag or obj.etag}
            )

        path = self._store.file_path(obj)
        try:
            await self._io_pool.run_blocking(_write_bytes, path, file_bytes)
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}", key=key, original=e) from e
        self._store.put_file(obj.model_copy(update={"length": len(file_bytes)}))
        return path

    async def remove_file(self, key: str) -> bool:
        obj = self._store.retrieve_cache_data(key)
        if obj is None:
            return False
        self._store.remove_cache_file(obj)
        return True

    async def empty_cache(self) -> None:
        self._store.empty_cache()

    def stats(self) -> CacheStats:
        return self._store.stats()

    async def close(self) -> None:
        """Wait for background refreshes, then release HTTP and SQLite resources."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self._web_helper.file_service.close()
        self._store.close()

    def _to_file_info(self, obj: CacheObject | None) -> FileInfo | None:
        if obj is None:
            return None
        path = self._store.file_path(obj)
        if not path.exists():
            return None
        return FileInfo(
            file=path,
            source=FileSource.CACHE,
            valid_till=obj.valid_till,
            original_url=obj.url,
        )

    def _refresh_in_background(
        self, url: str, key: str, headers: dict[str, str] | None
    ) -> None:
        task = asyncio.get_running_loop().create_task(self._refresh(url, key, headers))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh(self, url: str, key: str, headers: dict[str, str] | None) -> None:
        try:
            await self.download_file(url, key=key, headers=headers)
        except ImgCacheError as e:
            logger.warning("Background refresh of %s failed: %s", url, e)
