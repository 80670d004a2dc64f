"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from fasting_app.engine import FastingSessionEngine
from fasting_app.notifications.memory_scheduler import InMemoryNotificationScheduler
from fasting_app.persistence.session_store import SQLiteSessionStore
from fasting_app.state.models import Session

BASE_TIME = datetime(2024, 3, 10, 8, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Manually advanced clock for deterministic engine tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def base_time() -> datetime:
    """Fixed reference instant (2024-03-10 08:00 UTC)."""
    return BASE_TIME


@pytest.fixture
def clock() -> FixedClock:
    """Clock starting at the reference instant."""
    return FixedClock(BASE_TIME)


@pytest.fixture
def store(tmp_path) -> SQLiteSessionStore:
    """SQLite store in a temporary directory."""
    return SQLiteSessionStore(tmp_path / "fasting.db")


@pytest.fixture
def scheduler() -> InMemoryNotificationScheduler:
    """Recording notification scheduler."""
    return InMemoryNotificationScheduler()


@pytest.fixture
def make_engine(store, scheduler, clock):
    """Factory building engines over the shared store, scheduler and clock."""
    def _make(**kwargs) -> FastingSessionEngine:
        kwargs.setdefault("store", store)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("clock", clock)
        return FastingSessionEngine(**kwargs)

    return _make


@pytest.fixture
def engine(make_engine) -> FastingSessionEngine:
    """Engine with default configuration and an empty store."""
    return make_engine()


@pytest.fixture
def make_session():
    """Factory for closed or open sessions relative to the reference instant."""
    def _make(
        plan_id: str = "16-8",
        start_offset_hours: float = 0.0,
        duration_hours: float = None,
        completed: bool = False
    ) -> Session:
        start = BASE_TIME + timedelta(hours=start_offset_hours)
        if duration_hours is None:
            return Session(plan_id=plan_id, start_time=start)
        return Session(
            plan_id=plan_id,
            start_time=start,
            end_time=start + timedelta(hours=duration_hours),
            completed=completed,
            actual_fasting_hours=duration_hours
        )

    return _make
