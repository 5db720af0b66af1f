"""Snapshot models for cache statistics and query metrics."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Point-in-time view of a QueryCache."""

    size: int = Field(..., ge=0, description="Resident entries")
    max_size: int = Field(..., ge=1, description="Configured capacity")
    hit_rate: float = Field(..., ge=0.0, le=1.0, description="hits / lookups")
    hits: int = 0
    misses: int = 0
    lookups: int = 0
    evictions: int = 0
    expirations: int = 0


class QueryMetric(BaseModel):
    """Timing record for one read served through the cache."""

    query: str = Field(..., description="Operation name, e.g. 'courses'")
    execution_ms: float = Field(..., ge=0.0)
    row_count: int = Field(default=0, ge=0)
    cached: bool
    timestamp: datetime


class MetricsSummary(BaseModel):
    """Aggregate view over the rolling metrics log.

    cache_hit_rate is a fraction in [0, 1]; avg_execution_ms covers uncached
    queries only.
    """

    total_queries: int
    cached_queries: int
    cache_hit_rate: float
    avg_execution_ms: float
    recent_queries: List[QueryMetric] = Field(default_factory=list)
