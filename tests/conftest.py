"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from cellengine.core.action import Action
from cellengine.core.config import KernelConfig
from cellengine.core.event import Event
from cellengine.storage.memory_store import InMemoryStorage
from cellengine.storage.sqlite_store import SQLiteStorage

BASE_TS = 1_700_000_000_000


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = BASE_TS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingExecutor:
    """Action executor that records calls and fails on chosen ids."""

    def __init__(self, fail_ids: set[str] | None = None) -> None:
        self.calls: list[str] = []
        self.fail_ids = fail_ids or set()

    async def __call__(self, action: Action) -> None:
        self.calls.append(action.id)
        if action.id in self.fail_ids:
            raise RuntimeError(f"step {action.id} failed")


def _make_event(
    event_id: str,
    url: str = "/a",
    method: str = "GET",
    timestamp: int = BASE_TS,
) -> Event:
    return Event.create(method, url, timestamp=timestamp, event_id=event_id)


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for request events at a fixed base timestamp."""
    return _make_event


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> KernelConfig:
    """Kernel config with pacing removed for fast tests."""
    return KernelConfig(step_delay_seconds=0.0, rebuild_interval_seconds=3600.0)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def failing_executor() -> Callable[..., RecordingExecutor]:
    """Factory for executors that fail on the given action ids."""
    return lambda *ids: RecordingExecutor(set(ids))


@pytest_asyncio.fixture
async def storage() -> AsyncGenerator[InMemoryStorage, None]:
    """In-memory storage in the default namespace."""
    store = InMemoryStorage()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def sqlite_storage(tmp_path: Path) -> AsyncGenerator[SQLiteStorage, None]:
    """SQLite storage backed by a temporary database."""
    store = SQLiteStorage(tmp_path / "cell.db")
    await store.initialize()
    yield store
    await store.close()
