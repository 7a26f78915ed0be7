"""Pytest configuration and fixtures for unit tests."""

from datetime import UTC, datetime

import pytest

from tests.unit.mocks import FixedClock, InMemoryKeyValueStore
from zenith.core.events import EventHub
from zenith.services.persistence_store import PersistenceStore
from zenith.services.points_engine import PointsEngine
from zenith.services.streak_engine import StreakEngine
from zenith.services.task_store import TaskStore


# Midday, so +/- a few hours never crosses a calendar day in UTC
NOW = datetime(2025, 9, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock() -> FixedClock:
    """Provides a clock frozen at NOW."""
    return FixedClock(NOW)


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """Provides a fresh InMemoryKeyValueStore for each test."""
    return InMemoryKeyValueStore()


@pytest.fixture
def events() -> EventHub:
    return EventHub()


@pytest.fixture
def persistence(kv_store: InMemoryKeyValueStore, clock: FixedClock) -> PersistenceStore:
    return PersistenceStore(kv_store, clock=clock)


@pytest.fixture
def task_store(persistence: PersistenceStore, events: EventHub, clock: FixedClock) -> TaskStore:
    return TaskStore(persistence, events=events, clock=clock)


@pytest.fixture
def points_engine(persistence: PersistenceStore, events: EventHub, clock: FixedClock) -> PointsEngine:
    return PointsEngine(persistence, events=events, clock=clock)


@pytest.fixture
def streak_engine(
    persistence: PersistenceStore, task_store: TaskStore, events: EventHub, clock: FixedClock
) -> StreakEngine:
    return StreakEngine(persistence, task_store, events=events, clock=clock)
