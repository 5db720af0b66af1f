"""Tests for the cached query runner."""

import pytest

from querycache.cache import QueryCache
from querycache.keys import build_query_key
from querycache.metrics import QueryMetricsRecorder
from querycache.runner import CachedQueryRunner


@pytest.fixture
def runner(clock):
    cache = QueryCache(max_size=10, default_ttl_ms=300_000, clock=clock)
    return CachedQueryRunner(cache, QueryMetricsRecorder())


class FakeStore:
    """Counts backing-store reads."""

    def __init__(self, rows=None):
        self.calls = 0
        self.rows = rows if rows is not None else [{"id": 1}, {"id": 2}]

    async def fetch(self):
        self.calls += 1
        return self.rows


class TestRun:
    """Test cached reads."""

    @pytest.mark.asyncio
    async def test_second_read_served_from_cache(self, runner):
        """Test that a repeated read skips the backing store."""
        store = FakeStore()
        params = {"language": "es", "level": "B2"}

        first = await runner.run("courses", store.fetch, params)
        second = await runner.run("courses", store.fetch, {"level": "B2", "language": "es"})

        assert first is second
        assert store.calls == 1

    @pytest.mark.asyncio
    async def test_distinct_params_not_shared(self, runner):
        """Test that different params fetch separately."""
        store = FakeStore()
        await runner.run("courses", store.fetch, {"page": 1})
        await runner.run("courses", store.fetch, {"page": 2})
        assert store.calls == 2

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, runner):
        """Test metric records for a miss and a hit."""
        store = FakeStore()
        await runner.run("courses", store.fetch)
        await runner.run("courses", store.fetch)

        summary = runner.metrics()
        assert summary.total_queries == 2
        assert summary.cached_queries == 1
        hit = summary.recent_queries[-1]
        assert hit.cached is True
        assert hit.execution_ms == 0.0
        assert hit.row_count == 2

    @pytest.mark.asyncio
    async def test_fetch_error_propagates(self, runner):
        """Test that fetch errors surface unchanged and are not recorded."""
        error = LookupError("PGRST116")

        async def failing():
            raise error

        with pytest.raises(LookupError) as exc_info:
            await runner.run("analytics", failing, {"user_id": 42})
        assert exc_info.value is error
        assert len(runner.cache) == 0
        assert runner.metrics().total_queries == 0

    @pytest.mark.asyncio
    async def test_ttl_override(self, runner, clock):
        """Test a per-read TTL longer than the default."""
        store = FakeStore()
        await runner.run("analytics", store.fetch, ttl_ms=1_800_000)
        clock.advance(600_000)
        await runner.run("analytics", store.fetch, ttl_ms=1_800_000)
        assert store.calls == 1

    @pytest.mark.asyncio
    async def test_scope_invalidation(self, runner):
        """Test invalidating every read scoped to one user."""
        store = FakeStore()
        await runner.run("progress", store.fetch, {"course_id": 1}, scope="user:42")
        await runner.run("exam-results", store.fetch, {"limit": 10}, scope="user:42")
        await runner.run("progress", store.fetch, {"course_id": 1}, scope="user:99")

        assert runner.invalidate("user:42") == 2
        assert runner.cache.keys() == [build_query_key("progress", {"course_id": 1}, scope="user:99")]

    @pytest.mark.asyncio
    async def test_disabled_runner_bypasses_cache(self, clock):
        """Test that a disabled runner always fetches."""
        runner = CachedQueryRunner(QueryCache(clock=clock), QueryMetricsRecorder(), enabled=False)
        store = FakeStore()
        await runner.run("courses", store.fetch)
        await runner.run("courses", store.fetch)
        assert store.calls == 2
        assert len(runner.cache) == 0

    @pytest.mark.asyncio
    async def test_row_count_for_mapping_and_none(self, runner):
        """Test row counts for single rows and empty results."""
        async def one():
            return {"id": 1, "title": "A1"}

        async def nothing():
            return None

        await runner.run("course", one)
        await runner.run("missing", nothing)
        rows = [m.row_count for m in runner.recorder.records()]
        assert rows == [1, 0]

    def test_metrics_without_recorder(self, clock):
        """Test metrics() without a recorder."""
        assert CachedQueryRunner(QueryCache(clock=clock)).metrics() is None


class TestBatch:
    """Test batched id reads."""

    @pytest.mark.asyncio
    async def test_empty_ids_skip_fetch(self, runner):
        """Test that an empty id list never fetches."""
        store = FakeStore()
        assert await runner.batch("academy_courses", [], store.fetch) == []
        assert store.calls == 0

    @pytest.mark.asyncio
    async def test_batch_cached_by_ids(self, runner):
        """Test that batches are cached per ordered id list."""
        store = FakeStore()
        await runner.batch("academy_courses", ["a", "b"], store.fetch)
        await runner.batch("academy_courses", ["a", "b"], store.fetch)
        await runner.batch("academy_courses", ["b", "a"], store.fetch)
        assert store.calls == 2
        assert runner.invalidate("batch:academy_courses") == 2

    @pytest.mark.asyncio
    async def test_batch_key_hashes_ids(self, runner):
        """Test that large id lists are hashed into the key."""
        store = FakeStore()
        ids = [f"course-{i}" for i in range(500)]
        await runner.batch("academy_courses", ids, store.fetch)

        (key,) = runner.cache.keys()
        assert key == build_query_key(
            "batch:academy_courses", {"ids": ids}, digest=True
        )
        assert "course-499" not in key
        assert len(key) < 120
