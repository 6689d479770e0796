"""Image cache manager — resized variants of cached images, one resize per key."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from imgcache.cache.keys import build_derived_key
from imgcache.cache.store import CacheStore
from imgcache.concurrency.broadcast import BroadcastStream
from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.config.schema import CacheConfig
from imgcache.core import CacheManager
from imgcache.fetch.client import HttpFileService
from imgcache.images.resize import ResizeJob, resize_image_file
from imgcache.types import BoundingBox, DownloadProgress, FileResponse

logger = logging.getLogger(__name__)


class ImageCacheManager(CacheManager):
    """CacheManager that can also serve images resized to fit a bounding box.

    A resized variant is stored under a derived key such as
    ``resized_w100_h75_https://example.com/a.png``. When it is missing, the
    original is fetched (from the cache or online), resized and stored.
    Concurrent requests for the same variant share a single resize.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        store: CacheStore | None = None,
        file_service: HttpFileService | None = None,
        resize_pool: ConcurrencyPool | None = None,
    ) -> None:
        super().__init__(config=config, store=store, file_service=file_service)
        self._resize_pool = resize_pool or ConcurrencyPool(
            max_workers=self.config.resize_workers
        )
        self._running_resizes: dict[str, BroadcastStream[FileResponse]] = {}
        self._resize_lock = asyncio.Lock()

    def is_resizing(self, resized_key: str) -> bool:
        return resized_key in self._running_resizes

    async def get_image_file(
        self,
        url: str,
        key: str | None = None,
        headers: dict[str, str] | None = None,
        with_progress: bool = False,
        max_width: int | None = None,
        max_height: int | None = None,
    ) -> AsyncIterator[FileResponse]:
        """Yield the image at ``url`` resized to fit ``max_width`` x ``max_height``.

        Without either bound this is ``get_file_stream``. A fresh resized
        file in the cache is yielded alone. A stale one is yielded first and
        followed by the recomputed file, without progress events.
        """
        box = BoundingBox(max_width=max_width, max_height=max_height)
        if box.is_empty:
            async for response in self.get_file_stream(
                url, key=key, headers=headers, with_progress=with_progress
            ):
                yield response
            return

        key = key or url
        resized_key = build_derived_key(key, max_width, max_height)

        # Cache check and join-or-start must not interleave with another
        # request for the same key, or two resizes could start.
        async with self._resize_lock:
            from_cache = await self.get_file_from_cache(resized_key)
            if from_cache is not None and from_cache.is_fresh:
                events = None
            else:
                if from_cache is not None:
                    with_progress = False
                events = self._join_resize(url, key, resized_key, headers, with_progress, box)

        if from_cache is not None:
            logger.debug("Serving cached %s (fresh=%s)", resized_key, from_cache.is_fresh)
            yield from_cache
        if events is None:
            return

        async for response in events:
            if isinstance(response, DownloadProgress) and not with_progress:
                continue
            yield response

    def _join_resize(
        self,
        url: str,
        key: str,
        resized_key: str,
        headers: dict[str, str] | None,
        with_progress: bool,
        box: BoundingBox,
    ) -> AsyncIterator[FileResponse]:
        running = self._running_resizes.get(resized_key)
        if running is None:
            logger.debug("Starting resize %s", resized_key)
            running = BroadcastStream(
                self._fetch_resized_file(url, key, resized_key, headers, with_progress, box),
                name=resized_key,
                on_complete=self._resize_finished,
            )
            self._running_resizes[resized_key] = running
        else:
            logger.debug("Joining running resize %s", resized_key)
        return running.subscribe()

    def _resize_finished(self, stream: BroadcastStream[FileResponse]) -> None:
        if self._running_resizes.get(stream.name) is stream:
            del self._running_resizes[stream.name]

    async def _fetch_resized_file(
        self,
        url: str,
        key: str,
        resized_key: str,
        headers: dict[str, str] | None,
        with_progress: bool,
        box: BoundingBox,
    ) -> AsyncIterator[FileResponse]:
        async for response in self.get_file_stream(
            url, key=key, headers=headers, with_progress=with_progress
        ):
            if isinstance(response, DownloadProgress):
                yield response
                continue
            yield await resize_image_file(
                ResizeJob(
                    original_file=response,
                    key=resized_key,
                    cache_manager=self,
                    max_width=box.max_width,
                    max_height=box.max_height,
                ),
                pool=self._resize_pool,
            )
