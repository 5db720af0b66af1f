"""
Query Cache Module

Process-local query result caching with TTL expiry, FIFO eviction and metrics.
"""

__version__ = "0.1.0"

from .cache import CacheEntry, QueryCache
from .config import CacheConfig, build_cache, build_runner, load_config
from .keys import build_query_key
from .metrics import QueryMetricsRecorder
from .models import CacheStats, MetricsSummary, QueryMetric
from .runner import CachedQueryRunner

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheStats",
    "CachedQueryRunner",
    "MetricsSummary",
    "QueryCache",
    "QueryMetric",
    "QueryMetricsRecorder",
    "build_cache",
    "build_query_key",
    "build_runner",
    "load_config",
]
