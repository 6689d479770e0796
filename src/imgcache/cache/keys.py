"""Cache key and file name generation."""

from __future__ import annotations

import uuid

_RESIZED_TAG = "resized"


def build_derived_key(
    base_key: str,
    max_width: int | None = None,
    max_height: int | None = None,
) -> str:
    """Build the cache key of a resized variant of ``base_key``.

    Format is ``resized[_w<max_width>][_h<max_height>]_<base_key>``. A
    segment is present only when that dimension was requested, and width
    always precedes height, so the key is stable across callers and can be
    shared with other implementations of the same cache layout.
    """
    key = _RESIZED_TAG
    if max_width is not None:
        key += f"_w{max_width}"
    if max_height is not None:
        key += f"_h{max_height}"
    return f"{key}_{base_key}"


def new_relative_path(file_extension: str = ".file") -> str:
    """Random file name for a new cache object, keeping ``file_extension``."""
    if file_extension and not file_extension.startswith("."):
        file_extension = "." + file_extension
    return f"{uuid.uuid4()}{file_extension}"
