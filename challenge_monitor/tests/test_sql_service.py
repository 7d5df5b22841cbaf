"""End-to-end service flows on the SQL store (sqlite in-memory)."""

from datetime import date, timedelta

import pytest

from challenge_monitor.features.challenges.service import ChallengeService
from challenge_monitor.features.daily_log.event_store_sql import SqlEventLogStore
from challenge_monitor.models.challenge import LogStatus

START = date(2024, 2, 1)
END = date(2024, 2, 5)


@pytest.fixture
def sql_service(sqlite_engine, clock):
    return ChallengeService(SqlEventLogStore(clock=clock), today=lambda: date(2024, 2, 10))


def test_auto_skip_scenario(sql_service):
    challenge = sql_service.create_challenge(title="Stretch", start_date=START, end_date=END)

    assert sql_service.run_auto_skip(date(2024, 2, 2)) == [challenge.id]
    assert sql_service.run_auto_skip(date(2024, 2, 2)) == []
    assert sql_service.get_resolved_status(challenge.id, date(2024, 2, 2)) == LogStatus.SKIPPED
    assert sql_service.get_challenge(challenge.id).days_logged == 1


def test_completion_persists(sql_service):
    challenge = sql_service.create_challenge(title="Read", start_date=START, end_date=END)
    for offset in range(5):
        sql_service.log_day(challenge.id, START + timedelta(days=offset), "FOLLOWED")

    reloaded = sql_service.get_challenge(challenge.id)
    assert reloaded.is_active is False
    assert reloaded.days_logged == 5

    statuses = [e.status for e in sql_service.get_log(challenge.id)]
    assert statuses.count(LogStatus.COMPLETED) == 1
    assert statuses[0] == LogStatus.CREATED

    info = sql_service.get_streaks(challenge.id, today=END)
    assert (info.current, info.longest) == (5, 5)


def test_soft_delete_persists(sql_service):
    challenge = sql_service.create_challenge(title="Walk", start_date=START, end_date=END)
    sql_service.delete_challenge(challenge.id)

    assert sql_service.get_challenge(challenge.id).is_deleted
    assert sql_service.store.get_active_challenges_in_range(date(2024, 2, 3)) == []
