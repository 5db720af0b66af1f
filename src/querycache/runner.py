"""Cached read path over a backing store.

Design:
- Builds the cache key from operation + params (+ optional scope)
- Serves hits from QueryCache, otherwise awaits the caller's fetch
- Records a QueryMetric per served read (hits with execution_ms=0)
- Fetch failures propagate unchanged and are not recorded
"""

import logging
import time
from collections.abc import Mapping, Sized
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from .cache import QueryCache
from .keys import build_query_key
from .metrics import QueryMetricsRecorder
from .models import MetricsSummary

logger = logging.getLogger(__name__)

_MISSING = object()


def _row_count(result: Any) -> int:
    if result is None:
        return 0
    if isinstance(result, (str, bytes, Mapping)):
        return 1
    if isinstance(result, Sized):
        return len(result)
    return 1


class CachedQueryRunner:
    """Wraps async read operations with a QueryCache and metrics.

    Args:
        cache: Owned cache instance
        recorder: Metrics recorder (None disables timing records)
        default_ttl_ms: TTL used when run() gets none (falls back to the cache default)
        enabled: When False every read goes straight to fetch
    """

    def __init__(
        self,
        cache: QueryCache,
        recorder: Optional[QueryMetricsRecorder] = None,
        *,
        default_ttl_ms: Optional[int] = None,
        enabled: bool = True,
    ):
        self.cache = cache
        self.recorder = recorder
        self.default_ttl_ms = default_ttl_ms
        self.enabled = enabled

    def _record(self, operation: str, execution_ms: float, result: Any, cached: bool) -> None:
        if self.recorder is not None:
            self.recorder.record(operation, execution_ms, _row_count(result), cached)

    async def run(
        self,
        operation: str,
        fetch: Callable[[], Awaitable[Any]],
        params: Optional[Dict[str, Any]] = None,
        *,
        scope: Optional[str] = None,
        ttl_ms: Optional[int] = None,
        digest: bool = False,
    ) -> Any:
        """Run one logical read through the cache.

        Args:
            operation: Query name used in the key and in metrics
            fetch: Zero-arg coroutine function hitting the backing store
            params: Every parameter that affects the result
            scope: Tenant/user qualifier, e.g. "user:42"
            ttl_ms: TTL for this result (None uses the runner/cache default)
            digest: Hash params into the key (large id lists)

        Returns:
            Cached or freshly fetched result
        """
        key = build_query_key(operation, params, scope=scope, digest=digest)

        cached = self.cache.get(key, _MISSING) if self.enabled else _MISSING
        if cached is not _MISSING:
            self._record(operation, 0.0, cached, cached=True)
            return cached

        start_time = time.perf_counter()
        result = await fetch()
        execution_ms = (time.perf_counter() - start_time) * 1000

        ttl = ttl_ms if ttl_ms is not None else self.default_ttl_ms
        if self.enabled:
            self.cache.set(key, result, ttl)
        self._record(operation, execution_ms, result, cached=False)
        logger.debug(f"[{operation}] fetched in {execution_ms:.1f}ms")
        return result

    async def batch(
        self,
        table: str,
        ids: Sequence[Any],
        fetch: Callable[[], Awaitable[List[Any]]],
        *,
        ttl_ms: Optional[int] = None,
    ) -> List[Any]:
        """Fetch many rows of one table by id, cached as a single read.

        Id order is part of the key since results follow it; the id list is
        hashed into the key rather than embedded.
        """
        if not ids:
            return []
        return await self.run(
            f"batch:{table}",
            fetch,
            {"ids": list(ids)},
            ttl_ms=ttl_ms,
            digest=True,
        )

    def invalidate(self, pattern: Optional[str] = None) -> int:
        return self.cache.clear(pattern)

    def metrics(self, recent: int = 10) -> Optional[MetricsSummary]:
        if self.recorder is None:
            return None
        return self.recorder.summary(recent=recent)
