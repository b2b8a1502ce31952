"""Fixtures compartidas: feed, IA y API REST falsos."""

import asyncio
from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

import pytest

from wazap_services.api.aggregates_client import DailyEnergy, EnergyPoint
from wazap_services.stream.intent_store import InMemoryIntentStore
from wazap_services.stream.session_manager import StreamingSessionManager

_CLOSE = object()


class FakeFeed:
    """Feed controlado desde el test: cada apertura crea su propia cola."""

    def __init__(self) -> None:
        self.queues: List[asyncio.Queue] = []

    @property
    def opened(self) -> int:
        return len(self.queues)

    def frames(self):
        queue: asyncio.Queue = asyncio.Queue()
        self.queues.append(queue)
        return self._iterate(queue)

    async def _iterate(self, queue: asyncio.Queue):
        while True:
            item = await queue.get()
            if item is _CLOSE:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    def push(self, item, index: int = -1) -> None:
        self.queues[index].put_nowait(item)

    def close(self, index: int = -1) -> None:
        self.queues[index].put_nowait(_CLOSE)


class FakeCompletion:
    def __init__(self, enabled: bool = True, reply: str = "[]") -> None:
        self._enabled = enabled
        self.complete = AsyncMock(return_value=reply)

    def enabled(self) -> bool:
        return self._enabled


async def settle(turns: int = 10) -> None:
    """Deja correr las tareas pendientes del event loop."""
    for _ in range(turns):
        await asyncio.sleep(0)


FIXED_NOW = datetime(2025, 3, 14, 7, 30, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def feed() -> FakeFeed:
    return FakeFeed()


@pytest.fixture
def intent_store() -> InMemoryIntentStore:
    return InMemoryIntentStore()


@pytest.fixture
def manager(feed, intent_store, fixed_clock) -> StreamingSessionManager:
    return StreamingSessionManager(feed, intent_store, capacity=20, clock=fixed_clock)


@pytest.fixture
def aggregates():
    """API REST de agregados simulada."""
    mock = AsyncMock()
    mock.total_energy_today.return_value = 12.5
    mock.average_voltage.return_value = 3.4
    mock.energy_generation_24h.return_value = [
        EnergyPoint(time=f"{h}:00", energy=0.1 * h) for h in range(24)
    ]
    mock.daily_energy_7days.return_value = [
        DailyEnergy(date=f"2025-03-{d:02d}", energy=10.0 + d) for d in range(7, 14)
    ]
    return mock
