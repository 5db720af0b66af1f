"""Configuration for query caches.

Supports loading config from YAML and overriding with environment variables.
"""

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import yaml

from .cache import QueryCache
from .metrics import QueryMetricsRecorder
from .runner import CachedQueryRunner

logger = logging.getLogger(__name__)


@dataclass
class CacheConfig:
    """Settings for one cache instance."""

    enabled: bool = True
    max_size: int = 100
    default_ttl_ms: int = 300_000  # 5 minutes
    max_metrics: int = 1000


def _parse_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


# CacheConfig field -> (environment variable, parser)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "enabled": ("QUERY_CACHE_ENABLED", _parse_flag),
    "max_size": ("QUERY_CACHE_MAX_SIZE", int),
    "default_ttl_ms": ("QUERY_CACHE_DEFAULT_TTL_MS", int),
    "max_metrics": ("QUERY_CACHE_MAX_METRICS", int),
}


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply QUERY_CACHE_* environment variable overrides to config.

    Missing fields are filled from CacheConfig defaults. A value that fails to
    parse is ignored (with a warning) and the base value is kept.

    Args:
        config: Base configuration dict

    Returns:
        Configuration with env var overrides applied
    """
    config = config.copy()
    defaults = asdict(CacheConfig())

    for field_name, (env_var, parse) in ENV_OVERRIDES.items():
        current = config.get(field_name, defaults[field_name])
        value = os.getenv(env_var)
        if value is not None:
            try:
                current = parse(value)
            except ValueError:
                logger.warning(f"Ignoring invalid {env_var}={value!r}")
        config[field_name] = current

    return config


def _read_yaml_section(config_path: Path) -> Dict[str, Any]:
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if isinstance(data, dict) and "query_cache" in data:
        data = data["query_cache"]
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Cache config {config_path} is not a mapping, using defaults")
        return {}
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> CacheConfig:
    """Load cache config from YAML (optional) and the environment.

    The YAML file may hold the settings at top level or under a
    ``query_cache:`` section. Unknown keys are ignored; an empty or
    non-mapping document falls back to defaults.

    Args:
        path: YAML file path; None skips the file

    Returns:
        CacheConfig
    """
    raw: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            raw = _read_yaml_section(config_path)
            logger.info(f"Loaded cache config from {config_path}")
        else:
            logger.warning(f"Cache config not found: {config_path}, using defaults")

    merged = apply_env_overrides(raw)
    return CacheConfig(**{k: merged[k] for k in ENV_OVERRIDES})


def build_cache(config: CacheConfig) -> QueryCache:
    """Construct a cache from config. A disabled config stores nothing."""
    ttl = config.default_ttl_ms if config.enabled else 0
    return QueryCache(max_size=config.max_size, default_ttl_ms=ttl)


def build_runner(config: CacheConfig) -> CachedQueryRunner:
    return CachedQueryRunner(
        build_cache(config),
        QueryMetricsRecorder(max_metrics=config.max_metrics),
        enabled=config.enabled,
    )
