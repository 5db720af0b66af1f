"""Lightweight in-memory query result cache with TTL support.

Design:
- OrderedDict store; insertion order drives FIFO eviction (reads never promote)
- Per-entry TTL in milliseconds, fixed at insertion
- Lazy expiry on lookup, plus explicit cleanup()
- Hit/miss counters for stats(); they never influence cache behavior
- get_or_compute() memoizes an async read without single-flight de-duplication
"""

import inspect
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar, Union

from .models import CacheStats

logger = logging.getLogger(__name__)

V = TypeVar("V")

_MISSING = object()


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A single cached query result."""

    key: str
    value: V
    created_at: float
    ttl_ms: int

    def is_valid(self, now: float) -> bool:
        return now - self.created_at <= self.ttl_ms


class QueryCache(Generic[V]):
    """TTL-aware in-memory cache with FIFO eviction.

    Args:
        max_size: Maximum resident entries
        default_ttl_ms: TTL applied when set() is called without one
        clock: Zero-arg callable returning milliseconds (monotonic by default)
    """

    def __init__(
        self,
        max_size: int = 100,
        default_ttl_ms: int = 300_000,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock or _monotonic_ms
        self._store: "OrderedDict[str, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()

        self.lookups = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def _now(self) -> float:
        return self._clock()

    def _evict_one(self) -> None:
        """Evict the oldest-inserted entry. Caller holds the lock."""
        if not self._store:
            return
        key, _ = self._store.popitem(last=False)
        self.evictions += 1
        logger.debug(f"Evicted cache entry: {key}")

    def get(self, key: str, default: Optional[V] = None) -> Optional[V]:
        """Return the cached value for key, or default if absent or expired.

        An expired entry is removed as part of the lookup.
        """
        with self._lock:
            self.lookups += 1
            entry = self._store.get(key)
            if entry is None:
                self.misses += 1
                return default
            if not entry.is_valid(self._now()):
                del self._store[key]
                self.expirations += 1
                self.misses += 1
                logger.debug(f"Expired cache entry removed: {key}")
                return default
            self.hits += 1
            return entry.value

    def set(self, key: str, value: V, ttl_ms: Optional[int] = None) -> None:
        """Insert or replace the entry for key.

        A non-positive ttl_ms means "do not cache": nothing is stored and any
        existing entry is left as is.
        """
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            logger.debug(f"Skipping cache write for {key}: ttl_ms={ttl}")
            return

        with self._lock:
            if key not in self._store and len(self._store) >= self.max_size:
                self._evict_one()
            self._store[key] = CacheEntry(
                key=key, value=value, created_at=self._now(), ttl_ms=ttl
            )

    async def get_or_compute(
        self,
        key: str,
        ttl_ms: Optional[int],
        compute_fn: Callable[[], Union[Awaitable[V], V]],
    ) -> V:
        """Return the cached value for key, computing and storing it on a miss.

        Failures raised by compute_fn propagate unchanged and nothing is stored.
        Concurrent misses on the same key may each run compute_fn.

        Args:
            key: Cache key
            ttl_ms: TTL for the computed value (None uses the default)
            compute_fn: Zero-arg callable returning the value or an awaitable

        Returns:
            Cached or freshly computed value
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        result = compute_fn()
        if inspect.isawaitable(result):
            result = await result

        self.set(key, result, ttl_ms)
        return result

    def clear(self, pattern: Optional[str] = None) -> int:
        """Remove all entries, or only those whose key contains pattern.

        Args:
            pattern: Plain substring (not a glob or regex)

        Returns:
            Number of entries removed
        """
        with self._lock:
            if pattern is None:
                removed = len(self._store)
                self._store.clear()
            else:
                doomed = [k for k in self._store if pattern in k]
                for k in doomed:
                    del self._store[k]
                removed = len(doomed)

        if removed:
            logger.debug(f"Cleared {removed} cache entries (pattern={pattern!r})")
        return removed

    def cleanup(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._now()
            expired = [k for k, e in self._store.items() if not e.is_valid(now)]
            for k in expired:
                del self._store[k]
            self.expirations += len(expired)
        return len(expired)

    def stats(self) -> CacheStats:
        """Snapshot of size, capacity and hit rate. Does not purge anything."""
        with self._lock:
            lookups = self.lookups
            return CacheStats(
                size=len(self._store),
                max_size=self.max_size,
                hit_rate=(self.hits / lookups) if lookups else 0.0,
                hits=self.hits,
                misses=self.misses,
                lookups=lookups,
                evictions=self.evictions,
                expirations=self.expirations,
            )

    def reset_stats(self) -> None:
        with self._lock:
            self.lookups = 0
            self.hits = 0
            self.misses = 0
            self.evictions = 0
            self.expirations = 0

    def keys(self) -> List[str]:
        """Resident keys in insertion order (expired entries included)."""
        with self._lock:
            return list(self._store.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            entry = self._store.get(key)
            return entry is not None and entry.is_valid(self._now())
