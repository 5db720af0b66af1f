"""Operator API for query caches.

Design:
- Read-only stats and metrics endpoints for dashboards
- Explicit invalidation by key substring, and eager expiry cleanup
- Cache/recorder instances are injected; nothing global
"""

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel

from .cache import QueryCache
from .metrics import QueryMetricsRecorder
from .models import CacheStats, MetricsSummary

logger = logging.getLogger(__name__)


class RemovedResponse(BaseModel):
    """Number of entries removed by an invalidation call."""

    removed: int


# ============================================================================
# ROUTER
# ============================================================================


def create_router(
    cache: QueryCache,
    recorder: Optional[QueryMetricsRecorder] = None,
) -> APIRouter:
    """Build the /cache router bound to the given instances."""
    router = APIRouter(prefix="/cache", tags=["cache"])

    @router.get("/stats", response_model=CacheStats)
    async def get_stats() -> CacheStats:
        """Cache statistics.

        入力：なし
        出力：{"size", "max_size", "hit_rate", ...}
        副作用：なし（期限切れエントリも削除しない）
        失敗モード：なし
        """
        return cache.stats()

    @router.get("/metrics", response_model=MetricsSummary)
    async def get_metrics(recent: int = Query(default=10, ge=0, le=1000)) -> MetricsSummary:
        """Query timing summary.

        入力：recent（直近レコード数）
        出力：MetricsSummary
        副作用：なし
        失敗モード：recorder 未設定時は 404
        """
        if recorder is None:
            raise HTTPException(status_code=404, detail="Metrics recorder not configured")
        return recorder.summary(recent=recent)

    @router.delete("", response_model=RemovedResponse)
    async def clear_cache(pattern: Optional[str] = None) -> RemovedResponse:
        """Invalidate cached entries.

        入力：pattern（キー部分文字列、省略時は全削除）
        出力：{"removed": n}
        副作用：キャッシュエントリ削除
        失敗モード：なし
        """
        removed = cache.clear(pattern)
        logger.info(f"Cache cleared via API: pattern={pattern!r} removed={removed}")
        return RemovedResponse(removed=removed)

    @router.post("/cleanup", response_model=RemovedResponse)
    async def cleanup() -> RemovedResponse:
        return RemovedResponse(removed=cache.cleanup())

    return router


# ============================================================================
# APP
# ============================================================================


def create_app(
    cache: QueryCache,
    recorder: Optional[QueryMetricsRecorder] = None,
) -> FastAPI:
    """Standalone app exposing the cache router plus /health."""
    app = FastAPI(title="Query Cache", version="0.1.0")
    app.include_router(create_router(cache, recorder))

    @app.get("/health")
    async def health():
        return {"status": "ok", "cache_size": len(cache)}

    return app
