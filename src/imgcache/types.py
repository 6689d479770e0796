"""Shared Pydantic models for imgcache."""

from __future__ import annotations

import time
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

# ── Enums ──


class FileSource(StrEnum):
    CACHE = "cache"
    ONLINE = "online"


# ── Responses ──


class DownloadProgress(BaseModel):
    """Bytes received so far for one download."""

    model_config = ConfigDict(frozen=True)

    original_url: str
    total_size: int | None = None
    downloaded: int = 0

    @property
    def progress(self) -> float | None:
        if not self.total_size:
            return None
        return self.downloaded / self.total_size


class FileInfo(BaseModel):
    """A file available in the cache, with its provenance and freshness."""

    model_config = ConfigDict(frozen=True)

    file: Path
    source: FileSource
    valid_till: float
    original_url: str

    @property
    def is_fresh(self) -> bool:
        return self.valid_till > time.time()


FileResponse = DownloadProgress | FileInfo


class BoundingBox(BaseModel):
    """Target box for a resized variant. Either side may be left open."""

    model_config = ConfigDict(frozen=True)

    max_width: int | None = None
    max_height: int | None = None

    @property
    def is_empty(self) -> bool:
        return self.max_width is None and self.max_height is None
