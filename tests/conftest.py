"""Pytest fixtures for transactional-queuing tests."""

from __future__ import annotations

import pytest

from transactional_queuing import backoff
from transactional_queuing.memory import InMemoryQueueClient


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def queue_client(clock: FakeClock) -> InMemoryQueueClient:
    return InMemoryQueueClient(clock=clock)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record idle backoff sleeps (seconds) instead of sleeping."""
    recorded: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    monkeypatch.setattr(backoff, "_sleep", fake_sleep)
    return recorded
