"""Async HTTP file service wrapping httpx."""

from __future__ import annotations

import logging
import mimetypes
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from imgcache.config.defaults import DEFAULT_REQUEST_TIMEOUT, DEFAULT_VALID_DAYS
from imgcache.errors.http import classify_httpx_error

logger = logging.getLogger(__name__)

_DEFAULT_VALID_SECONDS = DEFAULT_VALID_DAYS * 24 * 3600


class HttpGetResponse:
    """Streaming GET response plus the cache metadata derived from its headers."""

    def __init__(self, response: httpx.Response, received_at: float | None = None) -> None:
        self._response = response
        self._received_at = received_at if received_at is not None else time.time()

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def content_length(self) -> int | None:
        value = self._response.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def etag(self) -> str | None:
        return self._response.headers.get("etag")

    @property
    def valid_till(self) -> float:
        """Expiry from Cache-Control (``no-cache`` → now, ``max-age=N``), default 7 days."""
        age = float(_DEFAULT_VALID_SECONDS)
        control = self._response.headers.get("cache-control")
        if control:
            for setting in control.split(","):
                setting = setting.strip().lower()
                if setting == "no-cache":
                    age = 0.0
                if setting.startswith("max-age="):
                    try:
                        seconds = int(setting.split("=", 1)[1])
                    except ValueError:
                        seconds = 0
                    if seconds > 0:
                        age = float(seconds)
        return self._received_at + age

    @property
    def file_extension(self) -> str:
        """Extension for the Content-Type, e.g. ``.png``; empty when unknown."""
        content_type = self._response.headers.get("content-type")
        if not content_type:
            return ""
        mime = content_type.split(";", 1)[0].strip().lower()
        return mimetypes.guess_extension(mime) or ""

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise classify_httpx_error(e, str(self._response.request.url)) from e


class HttpFileService:
    """Opens streaming GET requests against remote files."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    @asynccontextmanager
    async def open(
        self, url: str, headers: dict[str, str] | None = None
    ) -> AsyncIterator[HttpGetResponse]:
        """Send the request and yield the response with its body still unread."""
        request = self._client.build_request("GET", url, headers=headers)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise classify_httpx_error(e, url) from e
        try:
            yield HttpGetResponse(response)
        finally:
            await response.aclose()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
