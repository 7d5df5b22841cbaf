# challenge_monitor/conftest.py
from datetime import date, datetime, timedelta, timezone

import pytest


class FakeClock:
    """Deterministic clock for appended_at stamps; advances one second per read."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture(autouse=True)
def isolate_state(monkeypatch):
    """
    Fresh singletons and metrics for every test.

    DATABASE_URL is cleared so get_store() always falls back to the in-memory
    store; SQL-backed tests build their own engine on sqlite.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)

    from challenge_monitor.core.metrics import METRICS
    from challenge_monitor.features.challenges.service import reset_challenge_service
    from challenge_monitor.features.daily_log.event_store import reset_store

    reset_store()
    reset_challenge_service()
    METRICS.reset()
    yield
    reset_store()
    reset_challenge_service()
    METRICS.reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    from challenge_monitor.features.daily_log.event_store import InMemoryEventLogStore

    return InMemoryEventLogStore(clock=clock)


@pytest.fixture
def today():
    """Mutable 'today' used by services under test."""
    return {"value": date(2024, 2, 10)}


@pytest.fixture
def service(store, today):
    from challenge_monitor.features.challenges.service import ChallengeService

    return ChallengeService(store, today=lambda: today["value"])


@pytest.fixture
def sqlite_engine():
    """In-memory sqlite engine with the schema created; disposed afterwards."""
    from challenge_monitor.core.database import create_all_tables, dispose_engine, init_engine

    dispose_engine()
    engine = init_engine("sqlite://")
    create_all_tables()
    yield engine
    dispose_engine()
