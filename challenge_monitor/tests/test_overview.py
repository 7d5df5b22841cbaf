"""Daily overview queries."""

from datetime import date, timedelta

import pytest

from challenge_monitor.features.overview.service import DailyOverviewService
from challenge_monitor.models.challenge import LogStatus

START = date(2024, 2, 1)
END = date(2024, 2, 5)


@pytest.fixture
def overview(store):
    return DailyOverviewService(store)


@pytest.fixture
def trio(service):
    ids = [
        service.create_challenge(title=title, start_date=START, end_date=END).id
        for title in ("Read", "Walk", "Cook")
    ]
    service.log_day(ids[0], date(2024, 2, 2), "FOLLOWED")
    service.log_day(ids[1], date(2024, 2, 2), "SKIPPED")
    return ids


def test_logged_and_unlogged_partition_active(overview, trio):
    day = date(2024, 2, 2)
    logged = {c.id for c in overview.logged_challenges(day)}
    unlogged = {c.id for c in overview.unlogged_challenges(day)}

    assert logged == {trio[0], trio[1]}
    assert unlogged == {trio[2]}


def test_challenges_with_status(overview, trio):
    day = date(2024, 2, 2)
    assert [c.id for c in overview.challenges_with_status(day, LogStatus.SKIPPED)] == [trio[1]]
    assert [c.id for c in overview.challenges_with_status(day, LogStatus.PENDING)] == [trio[2]]


def test_logged_survives_later_edit_marker(service, overview, today, trio):
    today["value"] = date(2024, 2, 2)
    service.edit_challenge(trio[0], description="evening")

    assert trio[0] in {c.id for c in overview.logged_challenges(date(2024, 2, 2))}
    assert trio[0] in {c.id for c in overview.challenges_with_status(date(2024, 2, 2), LogStatus.FOLLOWED)}


def test_concluding(service, overview, trio):
    short = service.create_challenge(title="Short", start_date=START, end_date=date(2024, 2, 3))

    assert [c.id for c in overview.concluding_challenges(date(2024, 2, 3))] == [short.id]
    assert {c.id for c in overview.concluding_challenges(END)} == set(trio)


def test_completed_newest_end_first(service, overview):
    early = service.create_challenge(title="Early", start_date=START, end_date=START)
    late = service.create_challenge(title="Late", start_date=START, end_date=START + timedelta(days=1))
    service.log_day(early.id, START, "FOLLOWED")
    service.log_day(late.id, START, "FOLLOWED")
    service.log_day(late.id, START + timedelta(days=1), "NOT_FOLLOWED")

    assert [c.id for c in overview.completed_challenges()] == [late.id, early.id]


def test_dates_with_status(service, overview, trio):
    service.log_day(trio[2], date(2024, 2, 4), "SKIPPED")
    service.log_day(trio[0], date(2024, 2, 3), "FOLLOWED")

    assert overview.dates_with_status(LogStatus.SKIPPED) == [date(2024, 2, 4), date(2024, 2, 2)]
    assert overview.dates_with_status(LogStatus.SKIPPED, before=date(2024, 2, 4)) == [date(2024, 2, 2)]
    assert overview.dates_with_status(LogStatus.FOLLOWED) == [date(2024, 2, 3), date(2024, 2, 2)]


def test_summary(overview, trio):
    summary = overview.summary(date(2024, 2, 2))

    assert summary["date"] == "2024-02-02"
    assert summary["active"] == 3
    assert summary["followed"] == [trio[0]]
    assert summary["skipped"] == [trio[1]]
    assert summary["unlogged"] == [trio[2]]
    assert summary["completed_total"] == 0
