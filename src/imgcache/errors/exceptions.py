"""Custom exception hierarchy for imgcache."""

from __future__ import annotations

from typing import Any


class ImgCacheError(Exception):
    """Base exception for all imgcache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class HttpFetchError(ImgCacheError):
    """Upstream fetch failed — bad status code or transport error.

    Never retried here; callers decide whether to request again.
    """

    def __init__(
        self,
        message: str = "",
        url: str = "",
        status_code: int | None = None,
        error_type: str = "invalid_status",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.error_type = error_type
        self.original = original


class DecodeError(ImgCacheError):
    """Image bytes could not be decoded into a raster."""

    def __init__(self, message: str = "", path: str = "") -> None:
        super().__init__(message)
        self.path = path


class EncodeError(ImgCacheError):
    """A raster could not be written in the format named by the file extension."""

    def __init__(self, message: str = "", extension: str = "") -> None:
        super().__init__(message)
        self.extension = extension


class StoreError(ImgCacheError):
    """Persisting a file or its cache record failed."""

    def __init__(
        self,
        message: str = "",
        key: str = "",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.key = key
        self.original = original
