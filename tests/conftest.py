import io

import httpx
import pytest
from PIL import Image

from imgcache.config.schema import CacheConfig
from imgcache.fetch.client import HttpFileService
from imgcache.images.manager import ImageCacheManager


def make_image_bytes(size=(1000, 500), fmt="PNG", color="red") -> bytes:
    """Encode a solid-colour image of ``size`` in ``fmt``."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


class FakeServer:
    """Serves fixed responses by URL through httpx.MockTransport and records requests."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, body=b"", content_type="image/png", status=200, headers=None):
        all_headers = {"content-type": content_type, **(headers or {})}
        self.routes[url] = (status, body, all_headers)

    def count(self, url):
        return sum(1 for r in self.requests if str(r.url) == url)

    def handler(self, request):
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        status, body, headers = route
        if callable(body):
            return body(request)
        return httpx.Response(status, content=body, headers=headers)

    def client(self):
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def png_bytes():
    """1000x500 PNG."""
    return make_image_bytes()


@pytest.fixture
def server():
    return FakeServer()


@pytest.fixture
def cache_config(tmp_path):
    return CacheConfig(cache_dir=tmp_path / "cache")


@pytest.fixture
async def image_manager(cache_config, server):
    manager = ImageCacheManager(
        config=cache_config,
        file_service=HttpFileService(client=server.client()),
    )
    yield manager
    await manager.close()


@pytest.fixture
def image_bytes():
    """Factory: image_bytes(size=(w, h), fmt="PNG")."""
    return make_image_bytes


class BrokenBodyStream(httpx.AsyncByteStream):
    """Sends ``head`` and then drops the connection."""

    def __init__(self, head):
        self._head = head

    async def __aiter__(self):
        yield self._head
        raise httpx.ReadError("connection dropped")


@pytest.fixture
def broken_response():
    """Factory: a FakeServer body whose 200 response dies after ``head``."""

    def make(head, content_type="image/png"):
        def respond(request):
            return httpx.Response(
                200, headers={"content-type": content_type}, stream=BrokenBodyStream(head)
            )

        return respond

    return make
