"""Rolling log of query timings for cache observability.

Records are bounded; the oldest is dropped once max_metrics is reached.
Nothing here feeds back into caching decisions.
"""

import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, List

from .models import MetricsSummary, QueryMetric


class QueryMetricsRecorder:
    """Thread-safe bounded recorder of QueryMetric entries.

    Args:
        max_metrics: Maximum records kept in the rolling log
    """

    def __init__(self, max_metrics: int = 1000):
        if max_metrics < 1:
            raise ValueError(f"max_metrics must be >= 1, got {max_metrics}")
        self.max_metrics = max_metrics
        self._records: Deque[QueryMetric] = deque(maxlen=max_metrics)
        self._lock = threading.Lock()

    def record(
        self,
        query: str,
        execution_ms: float,
        row_count: int = 0,
        cached: bool = False,
    ) -> QueryMetric:
        metric = QueryMetric(
            query=query,
            execution_ms=max(0.0, execution_ms),
            row_count=max(0, row_count),
            cached=cached,
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            self._records.append(metric)
        return metric

    def records(self) -> List[QueryMetric]:
        with self._lock:
            return list(self._records)

    def summary(self, recent: int = 10) -> MetricsSummary:
        """Aggregate the rolling log.

        Args:
            recent: Number of most recent records to include

        Returns:
            MetricsSummary with hit rate and average uncached latency
        """
        with self._lock:
            records = list(self._records)

        total = len(records)
        cached = sum(1 for m in records if m.cached)
        uncached = [m.execution_ms for m in records if not m.cached]

        return MetricsSummary(
            total_queries=total,
            cached_queries=cached,
            cache_hit_rate=(cached / total) if total else 0.0,
            avg_execution_ms=(sum(uncached) / len(uncached)) if uncached else 0.0,
            recent_queries=records[-recent:] if recent > 0 else [],
        )

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
