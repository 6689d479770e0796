"""Classify httpx failures into the imgcache exception hierarchy."""

from __future__ import annotations

import httpx

from imgcache.errors.exceptions import HttpFetchError


def classify_httpx_error(exc: Exception, url: str = "") -> HttpFetchError:
    """Convert an httpx exception to an HttpFetchError."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return HttpFetchError(
            f"Invalid statusCode: {status}",
            url=url or str(exc.request.url),
            status_code=status,
            error_type="invalid_status",
            original=exc,
        )
    if isinstance(exc, httpx.TimeoutException):
        return HttpFetchError(
            str(exc) or "Request timed out",
            url=url,
            error_type="timeout",
            original=exc,
        )
    if isinstance(exc, httpx.TransportError):
        return HttpFetchError(
            str(exc) or "Connection failed",
            url=url,
            error_type="connection",
            original=exc,
        )
    return HttpFetchError(str(exc), url=url, error_type="unknown", original=exc)


def invalid_status(url: str, status_code: int) -> HttpFetchError:
    """Error for a response whose status is neither a new file nor not-modified."""
    return HttpFetchError(
        f"Invalid statusCode: {status_code}",
        url=url,
        status_code=status_code,
        error_type="invalid_status",
    )
