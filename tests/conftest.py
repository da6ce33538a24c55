import asyncio

import pytest

from timesync.repository import MemoryRepository
from timesync.store import TimeStore

T0 = 1_760_000_000_000


class FakeClock:
    """Injectable epoch-ms clock that only moves when told to."""

    def __init__(self, now_ms: int = T0):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float) -> int:
        self.now_ms += int(seconds * 1000)
        return self.now_ms


def run(coro):
    """Run an async function in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def store(repository, clock) -> TimeStore:
    return TimeStore(repository, clock=clock)
