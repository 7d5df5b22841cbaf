"""
challenge_monitor/tests/test_event_store.py

Store contract, run against the in-memory store and the SQL store (sqlite).
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from challenge_monitor.models.challenge import LogStatus, NewLogEvent

START = date(2024, 2, 1)
END = date(2024, 2, 5)


class SteppingClock:
    def __init__(self, readings):
        self._readings = list(readings)

    def __call__(self):
        return self._readings.pop(0)


@pytest.fixture(params=["memory", "sql"])
def make_store(request):
    """Factory building a store of the parametrized kind around a given clock."""
    if request.param == "memory":
        from challenge_monitor.features.daily_log.event_store import InMemoryEventLogStore

        return InMemoryEventLogStore

    request.getfixturevalue("sqlite_engine")
    from challenge_monitor.features.daily_log.event_store_sql import SqlEventLogStore

    return SqlEventLogStore


@pytest.fixture
def any_store(make_store, clock):
    return make_store(clock=clock)


def _new(challenge_id, status=LogStatus.FOLLOWED, log_date=START, notes=None):
    return NewLogEvent(challenge_id=challenge_id, log_date=log_date, status=status, notes=notes)


def _create(store, title="Journal", start=START, end=END):
    return store.create_challenge(title=title, description=None, start_date=start, end_date=end)


class TestChallenges:
    def test_create_and_get(self, any_store):
        created = _create(any_store)
        fetched = any_store.get_challenge(created.id)

        assert fetched.title == "Journal"
        assert fetched.start_date == START
        assert fetched.end_date == END
        assert fetched.is_active is True
        assert fetched.days_logged == 0
        assert fetched.created_at.tzinfo is not None

    def test_missing_challenge(self, any_store):
        assert any_store.get_challenge(404) is None

    def test_returned_challenge_is_a_copy(self, any_store):
        created = _create(any_store)
        created.days_logged = 99
        assert any_store.get_challenge(created.id).days_logged == 0

    def test_list_orders_active_first(self, any_store):
        old = _create(any_store, "Old", START - timedelta(days=30), END)
        new = _create(any_store, "New", START, END)
        done = _create(any_store, "Done", START + timedelta(days=1), END)
        any_store.update_challenge_aggregates(done.id, 5, False)

        assert [c.id for c in any_store.list_challenges()] == [new.id, old.id, done.id]

    def test_update_aggregates(self, any_store):
        created = _create(any_store)
        any_store.update_challenge_aggregates(created.id, 3, False)

        fetched = any_store.get_challenge(created.id)
        assert (fetched.days_logged, fetched.is_active) == (3, False)

    def test_update_details(self, any_store):
        created = _create(any_store)
        updated = any_store.update_challenge_details(
            created.id, title="Journal 2", description="nightly", start_date=START, end_date=END + timedelta(days=2)
        )
        assert updated.title == "Journal 2"
        assert updated.duration_days == 7

    def test_active_in_range(self, any_store):
        inside = _create(any_store, "Inside")
        _create(any_store, "Later", END + timedelta(days=1), END + timedelta(days=3))
        finished = _create(any_store, "Finished")
        any_store.update_challenge_aggregates(finished.id, 5, False)
        deleted = _create(any_store, "Deleted")
        any_store.mark_challenge_deleted(deleted.id, datetime(2024, 2, 2, tzinfo=timezone.utc))

        assert [c.id for c in any_store.get_active_challenges_in_range(date(2024, 2, 3))] == [inside.id]
        assert any_store.get_active_challenges_in_range(START) != []
        assert any_store.get_active_challenges_in_range(END) != []

    def test_mark_deleted(self, any_store):
        created = _create(any_store)
        any_store.mark_challenge_deleted(created.id, datetime(2024, 2, 2, tzinfo=timezone.utc))

        fetched = any_store.get_challenge(created.id)
        assert fetched.is_deleted
        assert fetched.is_active is False


class TestEvents:
    def test_append_assigns_id_and_stamp(self, any_store):
        challenge = _create(any_store)
        stored = any_store.append_event(_new(challenge.id, notes="ok"))

        assert stored.id >= 1
        assert stored.appended_at.tzinfo is not None
        assert stored.notes == "ok"
        assert any_store.count() == 1

    def test_get_events_filters_by_date(self, any_store):
        challenge = _create(any_store)
        any_store.append_event(_new(challenge.id, log_date=START))
        any_store.append_event(_new(challenge.id, log_date=START + timedelta(days=1)))

        assert len(any_store.get_events(challenge.id)) == 2
        assert [e.log_date for e in any_store.get_events(challenge.id, START)] == [START]

    def test_get_events_on_spans_challenges(self, any_store):
        a = _create(any_store, "A")
        b = _create(any_store, "B")
        any_store.append_event(_new(a.id))
        any_store.append_event(_new(b.id, status=LogStatus.SKIPPED))

        assert {e.challenge_id for e in any_store.get_events_on(START)} == {a.id, b.id}

    def test_events_returned_in_append_order(self, any_store):
        challenge = _create(any_store)
        ids = [any_store.append_event(_new(challenge.id, status=s)).id
               for s in (LogStatus.FOLLOWED, LogStatus.NOT_FOLLOWED, LogStatus.SKIPPED)]

        assert [e.id for e in any_store.get_events(challenge.id)] == ids


def test_appended_at_never_decreases(make_store):
    late = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)
    clock = SteppingClock([
        datetime(2024, 1, 1, tzinfo=timezone.utc),  # create_challenge
        late,
        late - timedelta(hours=1),  # clock stepped backwards
        late + timedelta(seconds=1),
    ])
    store = make_store(clock=clock)
    challenge = _create(store)

    first = store.append_event(_new(challenge.id))
    second = store.append_event(_new(challenge.id, status=LogStatus.NOT_FOLLOWED))
    third = store.append_event(_new(challenge.id, status=LogStatus.SKIPPED))

    assert first.appended_at == late
    assert second.appended_at == late
    assert second.id > first.id
    assert third.appended_at > second.appended_at

    from challenge_monitor.features.daily_log.resolver import resolve_status

    assert resolve_status(store.get_events(challenge.id)[:2], START) == LogStatus.NOT_FOLLOWED


def test_clear_resets_memory_store(store):
    challenge = _create(store)
    store.append_event(_new(challenge.id))
    store.clear()

    assert store.count() == 0
    assert store.list_challenges() == []
    assert _create(store).id == 1


def test_get_store_defaults_to_memory():
    from challenge_monitor.features.daily_log.event_store import (
        InMemoryEventLogStore,
        get_store,
    )

    first = get_store()
    assert isinstance(first, InMemoryEventLogStore)
    assert get_store() is first


def test_get_store_uses_sql_when_configured(monkeypatch, sqlite_engine):
    from challenge_monitor.features.daily_log.event_store import get_event_store
    from challenge_monitor.features.daily_log.event_store_sql import SqlEventLogStore

    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    assert isinstance(get_event_store(), SqlEventLogStore)
