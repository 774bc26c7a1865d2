"""Shared pytest fixtures for innkeep tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

from innkeep.infra.cache import TTLCache  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Fresh cache per test; nothing is shared between tests."""
    return TTLCache(clock=clock)
