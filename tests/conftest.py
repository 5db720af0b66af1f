"""Shared fixtures."""

import pytest

from querycache.cache import QueryCache


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock(start=1_000.0)


@pytest.fixture
def cache(clock):
    return QueryCache(max_size=3, default_ttl_ms=5000, clock=clock)
