"""Configuration hierarchy — merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.imgcache/config.yaml)
  3. Project config   (./imgcache.yaml)
  4. Environment variables (IMGCACHE_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from imgcache.config.defaults import get_defaults
from imgcache.config.schema import CacheConfig

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".imgcache" / "config.yaml"
_PROJECT_CONFIG_NAME = "imgcache.yaml"

# Map of environment variables to config keys
_ENV_MAP: dict[str, str] = {
    "IMGCACHE_CACHE_KEY": "cache_key",
    "IMGCACHE_CACHE_DIR": "cache_dir",
    "IMGCACHE_STALE_PERIOD_DAYS": "stale_period_days",
    "IMGCACHE_MAX_OBJECTS": "max_nr_of_cache_objects",
    "IMGCACHE_MEMORY_OBJECTS": "memory_cache_objects",
    "IMGCACHE_MAX_AGE_DAYS": "default_max_age_days",
    "IMGCACHE_CONCURRENT_FETCHES": "concurrent_fetches",
    "IMGCACHE_RESIZE_WORKERS": "resize_workers",
    "IMGCACHE_REQUEST_TIMEOUT": "request_timeout",
    "IMGCACHE_LOG_LEVEL": "log_level",
}

# Keys that should be parsed as specific types
_TYPE_MAP: dict[str, type] = {
    "stale_period_days": float,
    "max_nr_of_cache_objects": int,
    "memory_cache_objects": int,
    "default_max_age_days": float,
    "concurrent_fetches": int,
    "resize_workers": int,
    "request_timeout": float,
}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Load and merge configuration from all sources.

    Returns a merged dict with the final resolved values.
    """
    config = get_defaults()

    # Layer 2: Global config
    global_cfg = _load_yaml_config(_GLOBAL_CONFIG_PATH)
    if global_cfg:
        config.update(global_cfg)

    # Layer 3: Project config (search from cwd upward)
    project_path = _find_project_config()
    if project_path:
        project_cfg = _load_yaml_config(project_path)
        if project_cfg:
            config.update(project_cfg)

    # Layer 4: Environment variables
    config.update(_load_env_vars())

    # Layer 5: Runtime arguments — only override when explicitly set
    for key, value in runtime_overrides.items():
        if value is not None:
            config[key] = value

    return config


def load_config(**runtime_overrides: Any) -> CacheConfig:
    """Resolve the hierarchy and validate it into a CacheConfig."""
    return CacheConfig(**load_config_hierarchy(**runtime_overrides))


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Load a YAML config file if it exists."""
    if not path.exists() or not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if isinstance(data, dict):
            return data
        logger.warning("Config file %s is not a mapping, ignoring", path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
    return None


def _find_project_config() -> Path | None:
    """Search for imgcache.yaml from cwd upward."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / _PROJECT_CONFIG_NAME
        if candidate.exists():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """Read IMGCACHE_* environment variables."""
    result: dict[str, Any] = {}
    for env_key, config_key in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        result[config_key] = _coerce_env_value(config_key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Coerce an environment variable string to the appropriate type."""
    target_type = _TYPE_MAP.get(key)
    if target_type:
        try:
            return target_type(value)
        except (ValueError, TypeError):
            logger.warning(
                "Cannot convert env var for '%s' to %s: %s", key, target_type.__name__, value
            )
            return value

    return value
