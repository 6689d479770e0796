"""Pillow-backed image codec: decode, scale and encode by file name."""

from __future__ import annotations

import io
import math
from pathlib import Path

from PIL import Image

from imgcache.errors.exceptions import DecodeError, EncodeError

SUPPORTED_EXTENSIONS = ("jpg", "jpeg", "png", "tga", "gif", "cur", "ico")

_PIL_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "tga": "TGA",
    "gif": "GIF",
    # Pillow reads CUR but only writes ICO
    "cur": "ICO",
    "ico": "ICO",
}
_JPEG_MODES = {"RGB", "L", "CMYK"}
_MAX_ICO_SIDE = 256


def file_extension(path: str | Path) -> str:
    """Lower-cased extension without the dot; empty when there is none."""
    return Path(path).suffix.lstrip(".").lower()


def is_supported(path: str | Path) -> bool:
    return file_extension(path) in SUPPORTED_EXTENSIONS


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def decode_image(data: bytes, path: str = "") -> Image.Image:
    """Decode image bytes into a fully loaded Pillow image."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        EOFError,
        ValueError,
    ) as e:
        raise DecodeError(f"Cannot decode image {path or '<bytes>'}: {e}", path=path) from e
    return img


def copy_resize(
    image: Image.Image,
    width: int | None = None,
    height: int | None = None,
) -> Image.Image:
    """Resize to ``width`` x ``height``; a missing side keeps the aspect ratio."""
    if width is None and height is None:
        return image.copy()
    src_w, src_h = image.size
    if width is None:
        width = max(1, round_half_up(src_w * height / src_h))
    elif height is None:
        height = max(1, round_half_up(src_h * width / src_w))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def encode_named_image(image: Image.Image, filename: str | Path) -> bytes:
    """Encode ``image`` in the format named by ``filename``'s extension."""
    ext = file_extension(filename)
    fmt = _PIL_FORMATS.get(ext)
    if fmt is None:
        raise EncodeError(f"No encoder for '{filename}'", extension=ext)

    params: dict = {}
    if fmt == "JPEG" and image.mode not in _JPEG_MODES:
        image = image.convert("RGB")
    elif fmt == "ICO":
        params["sizes"] = [(min(image.width, _MAX_ICO_SIDE), min(image.height, _MAX_ICO_SIDE))]

    buf = io.BytesIO()
    try:
        image.save(buf, format=fmt, **params)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Cannot encode {fmt} for '{filename}': {e}", extension=ext) from e
    return buf.getvalue()
