"""Tests for target size computation and the resize executor."""

import time

import pytest
from PIL import Image

from imgcache.cache.keys import build_derived_key
from imgcache.concurrency.pool import ConcurrencyPool
from imgcache.errors.exceptions import DecodeError, StoreError
from imgcache.images import resize as resize_module
from imgcache.images.resize import ResizeJob, compute_target_dims, resize_image_file
from imgcache.types import FileInfo, FileSource

URL = "https://example.com/photo.png"


def _source(tmp_path, data, name="photo.png", valid_for=600.0):
    path = tmp_path / name
    path.write_bytes(data)
    return FileInfo(
        file=path,
        source=FileSource.ONLINE,
        valid_till=time.time() + valid_for,
        original_url=URL,
    )


class TestComputeTargetDims:
    def test_width_is_binding(self):
        assert compute_target_dims(1000, 500, 100, 100) == (100, 50)

    def test_height_is_binding(self):
        assert compute_target_dims(500, 1000, 100, 100) == (50, 100)

    def test_fits_within_box(self):
        out_w, out_h = compute_target_dims(1920, 1080, 300, 200)
        assert out_w <= 300
        assert out_h <= 200
        assert (out_w, out_h) == (300, 169)

    def test_half_rounds_up(self):
        # 1 / 2 = 0.5 rounds to 1, not to the even 0
        assert compute_target_dims(4, 1, 2, 2) == (2, 1)
        assert compute_target_dims(4, 3, 2, 2) == (2, 2)

    def test_single_bound_leaves_other_open(self):
        assert compute_target_dims(1000, 500, max_w=100) == (100, None)
        assert compute_target_dims(1000, 500, max_h=100) == (None, 100)


class TestResizeImageFile:
    async def test_resizes_and_stores_under_derived_key(self, tmp_path, image_manager, png_bytes):
        original = _source(tmp_path, png_bytes)
        key = build_derived_key(URL, 100, 100)

        result = await resize_image_file(
            ResizeJob(original, key, image_manager, max_width=100, max_height=100)
        )

        assert result.file != original.file
        assert result.file.suffix == ".png"
        assert Image.open(result.file).size == (100, 50)
        assert image_manager.store.retrieve_cache_data(key) is not None

    async def test_keeps_source_provenance(self, tmp_path, image_manager, png_bytes):
        original = _source(tmp_path, png_bytes)
        result = await resize_image_file(
            ResizeJob(original, "resized_w10_k", image_manager, max_width=10)
        )
        assert result.source == FileSource.ONLINE
        assert result.valid_till == original.valid_till
        assert result.original_url == URL

    async def test_derived_entry_inherits_remaining_validity(
        self, tmp_path, image_manager, png_bytes
    ):
        original = _source(tmp_path, png_bytes, valid_for=600.0)
        await resize_image_file(ResizeJob(original, "resized_w10_k", image_manager, max_width=10))
        obj = image_manager.store.retrieve_cache_data("resized_w10_k")
        assert obj.valid_till == pytest.approx(original.valid_till, abs=5)
        assert obj.valid_till - time.time() == pytest.approx(600, abs=5)

    async def test_single_bound_keeps_aspect(self, tmp_path, image_manager, png_bytes):
        original = _source(tmp_path, png_bytes)
        result = await resize_image_file(
            ResizeJob(original, "resized_h100_k", image_manager, max_height=100)
        )
        assert Image.open(result.file).size == (200, 100)

    async def test_jpeg_stays_jpeg(self, tmp_path, image_manager, image_bytes):
        original = _source(tmp_path, image_bytes(fmt="JPEG"), name="photo.jpg")
        result = await resize_image_file(
            ResizeJob(original, "resized_w50_k", image_manager, max_width=50)
        )
        assert result.file.suffix == ".jpg"
        assert Image.open(result.file).format == "JPEG"

    async def test_unsupported_format_returns_original(
        self, tmp_path, image_manager, image_bytes, monkeypatch
    ):
        decodes = []
        monkeypatch.setattr(resize_module, "decode_image", lambda *a: decodes.append(a))
        original = _source(tmp_path, image_bytes(fmt="BMP"), name="photo.bmp")

        result = await resize_image_file(
            ResizeJob(original, "resized_w10_k", image_manager, max_width=10)
        )

        assert result is original
        assert decodes == []
        assert image_manager.store.retrieve_cache_data("resized_w10_k") is None

    async def test_decode_failure_propagates(self, tmp_path, image_manager):
        original = _source(tmp_path, b"garbage")
        with pytest.raises(DecodeError):
            await resize_image_file(
                ResizeJob(original, "resized_w10_k", image_manager, max_width=10)
            )
        assert image_manager.store.retrieve_cache_data("resized_w10_k") is None

    async def test_missing_source_raises_store_error(self, tmp_path, image_manager, png_bytes):
        original = _source(tmp_path, png_bytes)
        original.file.unlink()
        with pytest.raises(StoreError) as exc_info:
            await resize_image_file(
                ResizeJob(original, "resized_w10_k", image_manager, max_width=10)
            )
        assert exc_info.value.key == "resized_w10_k"
        assert isinstance(exc_info.value.original, FileNotFoundError)

    async def test_runs_on_given_pool(self, tmp_path, image_manager, png_bytes, monkeypatch):
        pool = ConcurrencyPool(max_workers=1)
        calls = []
        run_blocking = pool.run_blocking

        async def recording(fn, *args, **kwargs):
            calls.append(fn)
            return await run_blocking(fn, *args, **kwargs)

        monkeypatch.setattr(pool, "run_blocking", recording)
        original = _source(tmp_path, png_bytes)
        await resize_image_file(
            ResizeJob(original, "resized_w10_k", image_manager, max_width=10), pool=pool
        )
        assert resize_module._transcode in calls
