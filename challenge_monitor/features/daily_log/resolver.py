"""
challenge_monitor/features/daily_log/resolver.py

Pure latest-wins resolution over the daily log.
All functions: (events, date) -> status. No I/O, no mutation, nothing raised.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

from challenge_monitor.models.challenge import (
    ACTIONABLE_STATUSES,
    SCORABLE_STATUSES,
    DailyLogEvent,
    LogStatus,
)


def latest_event(events: Iterable[DailyLogEvent]) -> Optional[DailyLogEvent]:
    """
    Pick the most recently appended event.

    Ordering is (appended_at, id): equal timestamps fall back to insertion
    order, so the result does not depend on the order of the input.
    """
    latest: Optional[DailyLogEvent] = None
    for event in events:
        if latest is None or event.order_key > latest.order_key:
            latest = event
    return latest


def resolve_status(events: Iterable[DailyLogEvent], on_date: date) -> LogStatus:
    """
    Resolve the authoritative status of one (challenge, date) pair.

    Args:
        events: Events of a single challenge (other dates are filtered out)
        on_date: Calendar date to resolve

    Returns:
        Status of the latest event for the date, PENDING when there is none
    """
    winner = latest_event(e for e in events if e.log_date == on_date)
    if winner is None:
        return LogStatus.PENDING
    return winner.status


def resolve_scorable_status(events: Iterable[DailyLogEvent], on_date: date) -> Optional[LogStatus]:
    """
    Latest-wins among scorable events only.

    CREATED/EDITED markers appended later on the same date must not shadow a
    real FOLLOWED entry, so they are dropped before picking the winner.
    """
    winner = latest_event(
        e for e in events
        if e.log_date == on_date and e.status in SCORABLE_STATUSES
    )
    return winner.status if winner is not None else None


def resolve_scorable_days(events: Iterable[DailyLogEvent]) -> Dict[date, LogStatus]:
    """
    Map each date carrying at least one scorable event to its resolved scorable status.

    Single pass; used by both progress and streak computation.
    """
    winners: Dict[date, DailyLogEvent] = {}
    for event in events:
        if event.status not in SCORABLE_STATUSES:
            continue
        current = winners.get(event.log_date)
        if current is None or event.order_key > current.order_key:
            winners[event.log_date] = event
    return {day: event.status for day, event in winners.items()}


def has_actionable_event(events: Iterable[DailyLogEvent], on_date: date) -> bool:
    """True when the date was already acted upon (scorable status, CREATED or EDITED)."""
    return any(
        e.log_date == on_date and e.status in ACTIONABLE_STATUSES
        for e in events
    )


def events_for_date(events: Iterable[DailyLogEvent], on_date: date) -> List[DailyLogEvent]:
    """Events of one date, oldest first."""
    return sorted((e for e in events if e.log_date == on_date), key=lambda e: e.order_key)
