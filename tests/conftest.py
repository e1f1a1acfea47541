"""Shared fixtures for work-hours tests."""

from datetime import datetime, timedelta

import pytest

from workhours.config import TrackerSettings
from workhours.db import SQLiteKeyValueStore
from workhours.service import WorkHoursService
from workhours.store import DailyAggregateStore

# Local, timezone-aware midday so day keys never straddle midnight.
BASE_TIME = datetime(2025, 1, 25, 10, 0, 0).astimezone()
BASE_DAY = "2025-01-25"


def at(seconds: float) -> datetime:
    """Instant ``seconds`` after BASE_TIME."""
    return BASE_TIME + timedelta(seconds=seconds)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def settings() -> TrackerSettings:
    return TrackerSettings(
        idle_timeout=timedelta(seconds=300),
        heartbeat_interval=timedelta(seconds=30),
        min_session_seconds=10,
    )


@pytest.fixture
def backend():
    kv = SQLiteKeyValueStore.open_in_memory()
    yield kv
    kv.close()


@pytest.fixture
def store(backend) -> DailyAggregateStore:
    return DailyAggregateStore(backend)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def service(store, settings, clock):
    svc = WorkHoursService(store, settings=settings, clock=clock)
    with svc:
        yield svc
