"""Cache record and statistics models."""

from __future__ import annotations

import time

from pydantic import BaseModel, Field


class CacheObject(BaseModel):
    """Bookkeeping for one file stored in the cache."""

    key: str
    url: str
    relative_path: str
    valid_till: float
    touched: float = Field(default_factory=time.time)
    length: int | None = None
    etag: str | None = None


class CacheStats(BaseModel):
    """Aggregate cache statistics."""

    entries: int = 0
    size_mb: float = 0.0
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
