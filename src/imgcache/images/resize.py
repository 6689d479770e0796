"""Resize a cached image into a derived cache entry."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.errors.exceptions import StoreError
from imgcache.images.codec import (
    SUPPORTED_EXTENSIONS,
    copy_resize,
    decode_image,
    encode_named_image,
    file_extension,
    round_half_up,
)
from imgcache.types import FileInfo

if TYPE_CHECKING:
    from imgcache.core import CacheManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResizeJob:
    original_file: FileInfo
    key: str
    cache_manager: CacheManager
    max_width: int | None = None
    max_height: int | None = None


def compute_target_dims(
    source_w: int,
    source_h: int,
    max_w: int | None = None,
    max_h: int | None = None,
) -> tuple[int | None, int | None]:
    """Output size for fitting a ``source_w`` x ``source_h`` image into the box.

    With both bounds the more restrictive axis decides a single factor, so
    the result fits the box and keeps the aspect ratio. With one bound the
    other side is left as None for the scaler to derive.
    """
    if max_w is None or max_h is None:
        return max_w, max_h
    factor = max(source_w / max_w, source_h / max_h)
    return round_half_up(source_w / factor), round_half_up(source_h / factor)


def _transcode(
    data: bytes,
    filename: str,
    max_width: int | None,
    max_height: int | None,
) -> bytes:
    image = decode_image(data, filename)
    width, height = max_width, max_height
    if width is not None and height is not None:
        width, height = compute_target_dims(image.width, image.height, width, height)
    resized = copy_resize(image, width=width, height=height)
    return encode_named_image(resized, filename)


async def resize_image_file(job: ResizeJob, pool: ConcurrencyPool | None = None) -> FileInfo:
    """Resize ``job.original_file`` and store the result under ``job.key``.

    Files whose extension is not in SUPPORTED_EXTENSIONS come back unchanged
    and nothing is stored. Otherwise the derived entry keeps the source's
    remaining validity, source kind and original URL.
    """
    original = job.original_file
    extension = file_extension(original.file)
    if extension not in SUPPORTED_EXTENSIONS:
        logger.debug("Not resizing %s: unsupported extension '%s'", original.file, extension)
        return original

    run = pool.run_blocking if pool is not None else asyncio.to_thread
    try:
        image_bytes = await run(original.file.read_bytes)
    except OSError as e:
        raise StoreError(
            f"Cannot read {original.file}: {e}", key=job.key, original=e
        ) from e
    encoded = await run(
        _transcode, image_bytes, original.file.name, job.max_width, job.max_height
    )

    max_age = original.valid_till - time.time()
    file = await job.cache_manager.put_file(
        original.original_url,
        encoded,
        key=job.key,
        max_age=max_age,
        file_extension=extension,
    )
    logger.info("Resized %s into %s (%d bytes)", original.original_url, job.key, len(encoded))

    return FileInfo(
        file=file,
        source=original.source,
        valid_till=original.valid_till,
        original_url=original.original_url,
    )
