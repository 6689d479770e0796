"""Pydantic model for the resolved cache configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from imgcache.config import defaults


class CacheConfig(BaseModel):
    cache_key: str = Field(default=defaults.DEFAULT_CACHE_KEY, min_length=1)
    cache_dir: Path = defaults.DEFAULT_CACHE_DIR
    stale_period_days: float = Field(default=defaults.DEFAULT_STALE_PERIOD_DAYS, ge=0)
    max_nr_of_cache_objects: int = Field(
        default=defaults.DEFAULT_MAX_NR_OF_CACHE_OBJECTS, ge=1
    )
    memory_cache_objects: int = Field(default=defaults.DEFAULT_MEMORY_CACHE_OBJECTS, ge=1)
    default_max_age_days: float = Field(default=defaults.DEFAULT_MAX_AGE_DAYS, ge=0)
    concurrent_fetches: int = Field(default=defaults.DEFAULT_CONCURRENT_FETCHES, ge=1)
    resize_workers: int = Field(default=defaults.DEFAULT_RESIZE_WORKERS, ge=1)
    request_timeout: float = Field(default=defaults.DEFAULT_REQUEST_TIMEOUT, gt=0)
    log_level: str = defaults.DEFAULT_LOG_LEVEL

    model_config = {"extra": "ignore"}

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _expand_cache_dir(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level
