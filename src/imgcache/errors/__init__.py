"""Error handling — exception hierarchy and HTTP error classification."""

from imgcache.errors.exceptions import (
    DecodeError,
    EncodeError,
    HttpFetchError,
    ImgCacheError,
    StoreError,
)

__all__ = [
    "ImgCacheError",
    "HttpFetchError",
    "DecodeError",
    "EncodeError",
    "StoreError",
]
