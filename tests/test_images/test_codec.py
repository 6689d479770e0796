"""Tests for the Pillow codec helpers."""

import io

import pytest
from PIL import Image

from imgcache.errors.exceptions import DecodeError, EncodeError
from imgcache.images.codec import (
    copy_resize,
    decode_image,
    encode_named_image,
    file_extension,
    is_supported,
    round_half_up,
)


class TestFileExtension:
    def test_lower_cased_without_dot(self):
        assert file_extension("/tmp/a.JPG") == "jpg"

    def test_no_extension(self):
        assert file_extension("/tmp/noext") == ""

    @pytest.mark.parametrize("name", ["a.jpg", "a.jpeg", "a.png", "a.tga", "a.gif", "a.cur", "a.ico"])
    def test_supported(self, name):
        assert is_supported(name)

    @pytest.mark.parametrize("name", ["a.bmp", "a.webp", "a.file", "a"])
    def test_unsupported(self, name):
        assert not is_supported(name)


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_other_values(self):
        assert round_half_up(2.49) == 2
        assert round_half_up(2.51) == 3


class TestDecode:
    def test_decodes_png(self, png_bytes):
        img = decode_image(png_bytes)
        assert img.size == (1000, 500)

    def test_invalid_bytes_raise(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_image(b"not an image", "/tmp/a.png")
        assert exc_info.value.path == "/tmp/a.png"

    def test_truncated_bytes_raise(self, png_bytes):
        with pytest.raises(DecodeError):
            decode_image(png_bytes[: len(png_bytes) // 2])


class TestCopyResize:
    def test_both_sides(self):
        img = Image.new("RGB", (1000, 500))
        assert copy_resize(img, 100, 50).size == (100, 50)

    def test_width_only_keeps_aspect(self):
        img = Image.new("RGB", (1000, 500))
        assert copy_resize(img, width=100).size == (100, 50)

    def test_height_only_keeps_aspect(self):
        img = Image.new("RGB", (1000, 500))
        assert copy_resize(img, height=100).size == (200, 100)

    def test_no_sides_copies(self):
        img = Image.new("RGB", (10, 10))
        copy = copy_resize(img)
        assert copy.size == (10, 10)
        assert copy is not img

    def test_palette_image(self):
        img = Image.new("P", (100, 100))
        assert copy_resize(img, width=10).size == (10, 10)


class TestEncode:
    @pytest.mark.parametrize(
        "name, pil_format",
        [("a.png", "PNG"), ("a.jpg", "JPEG"), ("a.jpeg", "JPEG"), ("a.gif", "GIF"),
         ("a.tga", "TGA"), ("a.ico", "ICO"), ("a.cur", "ICO")],
    )
    def test_format_follows_extension(self, name, pil_format):
        data = encode_named_image(Image.new("RGB", (32, 32), "blue"), name)
        assert Image.open(io.BytesIO(data), formats=[pil_format]).format == pil_format

    def test_jpeg_from_rgba(self):
        data = encode_named_image(Image.new("RGBA", (8, 8)), "a.jpg")
        assert Image.open(io.BytesIO(data)).mode == "RGB"

    def test_large_ico_is_capped(self):
        data = encode_named_image(Image.new("RGB", (400, 300)), "a.ico")
        assert max(Image.open(io.BytesIO(data)).size) <= 256

    def test_unsupported_extension_raises(self):
        with pytest.raises(EncodeError) as exc_info:
            encode_named_image(Image.new("RGB", (8, 8)), "a.bmp")
        assert exc_info.value.extension == "bmp"
