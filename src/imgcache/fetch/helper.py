"""Web helper — deduplicated, bounded downloads into the cache store."""

from __future__ import annotations

import logging
import os
import tempfile
import time
from collections.abc import AsyncIterator
from pathlib import Path

from imgcache.cache.keys import new_relative_path
from imgcache.cache.stats import CacheObject
from imgcache.cache.store import CacheStore
from imgcache.concurrency.broadcast import BroadcastStream
from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.config.defaults import DEFAULT_CONCURRENT_FETCHES
from imgcache.errors.exceptions import StoreError
from imgcache.errors.http import invalid_status
from imgcache.fetch.client import HttpFileService, HttpGetResponse
from imgcache.types import DownloadProgress, FileInfo, FileResponse, FileSource

logger = logging.getLogger(__name__)

_STATUS_NEW_FILE = {200, 202}
_STATUS_NOT_MODIFIED = {304}


class WebHelper:
    """Downloads files into a CacheStore.

    Concurrent downloads of the same key share one broadcast stream, and at
    most ``concurrent_fetches`` requests are open at once.
    """

    def __init__(
        self,
        store: CacheStore,
        file_service: HttpFileService | None = None,
        concurrent_fetches: int = DEFAULT_CONCURRENT_FETCHES,
    ) -> None:
        self._store = store
        self._file_service = file_service or HttpFileService()
        self._pool = ConcurrencyPool(max_workers=concurrent_fetches)
        self._running: dict[str, BroadcastStream[FileResponse]] = {}

    @property
    def file_service(self) -> HttpFileService:
        return self._file_service

    def is_downloading(self, key: str) -> bool:
        return key in self._running

    def download_file(
        self,
        url: str,
        key: str | None = None,
        headers: dict[str, str] | None = None,
        ignore_memory_cache: bool = False,
    ) -> AsyncIterator[FileResponse]:
        """Stream progress then the downloaded FileInfo.

        Joins a running download of the same key unless
        ``ignore_memory_cache`` forces a new one.
        """
        key = key or url
        stream = self._running.get(key)
        if stream is None or ignore_memory_cache:
            stream = BroadcastStream(
                self._update_file(url, key, headers),
                name=key,
                on_complete=lambda done: self._forget(key, done),
            )
            self._running[key] = stream
        return stream.subscribe()

    def _forget(self, key: str, stream: BroadcastStream[FileResponse]) -> None:
        if self._running.get(key) is stream:
            del self._running[key]

    async def _update_file(
        self, url: str, key: str, headers: dict[str, str] | None
    ) -> AsyncIterator[FileResponse]:
        async with self._pool.slot():
            obj = self._store.retrieve_cache_data(key)
            if obj is None:
                obj = CacheObject(
                    key=key,
                    url=url,
                    relative_path=new_relative_path(".file"),
                    valid_till=time.time(),
                )
            elif self._store.file_path(obj).exists():
                obj = obj.model_copy(update={"url": url})
            else:
                # A 304 would point at a file that is gone.
                obj = obj.model_copy(update={"url": url, "etag": None})

            request_headers = dict(headers or {})
            if obj.etag:
                request_headers.setdefault("If-None-Match", obj.etag)

            logger.info("Downloading %s", url)
            async with self._file_service.open(url, request_headers) as response:
                async for item in self._manage_response(obj, response):
                    yield item

    async def _manage_response(
        self, obj: CacheObject, response: HttpGetResponse
    ) -> AsyncIterator[FileResponse]:
        has_new_file = response.status_code in _STATUS_NEW_FILE
        keep_old_file = response.status_code in _STATUS_NOT_MODIFIED
        if not has_new_file and not keep_old_file:
            raise invalid_status(obj.url, response.status_code)

        new_obj = obj.model_copy(
            update={"valid_till": response.valid_till, "etag": response.etag or obj.etag}
        )
        old_obj: CacheObject | None = None
        extension = response.file_extension
        if has_new_file and extension and not obj.relative_path.endswith(extension):
            old_obj = obj
            new_obj = new_obj.model_copy(update={"relative_path": new_relative_path(extension)})

        if has_new_file:
            downloaded = 0
            async for downloaded in self._save_file(new_obj, response):
                yield DownloadProgress(
                    original_url=obj.url,
                    total_size=response.content_length,
                    downloaded=downloaded,
                )
            new_obj = new_obj.model_copy(update={"length": downloaded})
        else:
            logger.debug("Not modified: %s", obj.url)

        self._store.put_file(new_obj)
        if old_obj is not None and old_obj.relative_path != new_obj.relative_path:
            self._store.file_path(old_obj).unlink(missing_ok=True)

        yield FileInfo(
            file=self._store.file_path(new_obj),
            source=FileSource.ONLINE,
            valid_till=new_obj.valid_till,
            original_url=obj.url,
        )

    async def _save_file(
        self, obj: CacheObject, response: HttpGetResponse
    ) -> AsyncIterator[int]:
        """Write the body to the object's file, yielding bytes written so far.

        The body goes to a temporary file beside the target, which replaces
        the target only once the whole body has arrived.
        """
        path = self._store.file_path(obj)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".part"
            )
        except OSError as e:
            raise StoreError(f"Cannot write {path}: {e}", key=obj.key, original=e) from e
        tmp_path = Path(tmp_name)
        written = 0
        try:
            with os.fdopen(fd, "wb") as f:
                async for chunk in response.aiter_bytes():
                    f.write(chunk)
                    written += len(chunk)
                    yield written
            try:
                os.replace(tmp_path, path)
            except OSError as e:
                raise StoreError(f"Cannot write {path}: {e}", key=obj.key, original=e) from e
        finally:
            tmp_path.unlink(missing_ok=True)
