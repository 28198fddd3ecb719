"""Shared pytest fixtures for gasdiary tests."""

import asyncio
import os
import tempfile
from datetime import datetime

import pytest
from sqlalchemy import event

from gasdiary.config import FetchPolicy, Settings
from gasdiary.database.change_feed import ChangeFeed
from gasdiary.database.factories import create_sqlite_database
from gasdiary.database.kv_store import InMemoryKeyValueStore
from gasdiary.domain.realtime import Scheduler


class FakeClock:
    """Controllable clock returning seconds."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    def __init__(self, due: float, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Scheduler whose time only moves when a test says so.

    Spawned coroutines are queued and only run by ``run_spawned``.
    """

    def __init__(self):
        self.now = 0.0
        self.timers: list[ManualTimer] = []
        self.spawned = []

    def call_later(self, delay, callback):
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, coro):
        self.spawned.append(coro)

    @property
    def pending_timers(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = [t for t in self.pending_timers if t.due <= self.now]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            timer.fired = True
            timer.callback()

    async def run_spawned_async(self) -> None:
        while self.spawned:
            await self.spawned.pop(0)

    def run_spawned(self) -> None:
        asyncio.run(self.run_spawned_async())

    def close(self) -> None:
        for coro in self.spawned:
            coro.close()
        self.spawned = []


class QueryCounter:
    """Counts SQL statements executed against an engine."""

    def __init__(self, engine):
        self.count = 0
        self.engine = engine
        event.listen(engine, "before_cursor_execute", self._on_execute)

    def _on_execute(self, *args, **kwargs) -> None:
        self.count += 1

    def reset(self) -> None:
        self.count = 0

    def remove(self) -> None:
        event.remove(self.engine, "before_cursor_execute", self._on_execute)


@pytest.fixture
def change_feed():
    return ChangeFeed()


@pytest.fixture
def temp_db(change_feed):
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path, change_feed=change_feed)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def query_counter(temp_db):
    counter = QueryCounter(temp_db.session_factory.kw["bind"])
    yield counter
    counter.remove()


@pytest.fixture
def memory_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def manual_scheduler():
    scheduler = ManualScheduler()
    yield scheduler
    scheduler.close()


@pytest.fixture
def settings():
    """Settings without retries so failing sources fail fast."""
    return Settings(fetch_policy=FetchPolicy(timeout=5.0, attempts=1, backoff=0.0))


@pytest.fixture
def now():
    return datetime(2024, 6, 12, 15, 30)


@pytest.fixture
def roles(temp_db):
    """Assign one user per role."""
    temp_db.assign_user_role("u-owner", "owner")
    temp_db.assign_user_role("u-manager", "manager")
    temp_db.assign_user_role("u-driver", "driver")
    temp_db.assign_user_role("u-cashier", "cashier")
    return temp_db


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
