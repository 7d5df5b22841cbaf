"""
challenge_monitor/features/overview/service.py

Read-only daily dashboard queries. Everything is derived from the daily log
through the same latest-wins resolver used by progress and streaks.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from challenge_monitor.features.daily_log.event_store import EventLogStore, get_store
from challenge_monitor.features.daily_log.resolver import (
    resolve_scorable_days,
    resolve_scorable_status,
    resolve_status,
)
from challenge_monitor.models.challenge import SCORABLE_STATUSES, Challenge, DailyLogEvent, LogStatus


class DailyOverviewService:
    def __init__(self, store: Optional[EventLogStore] = None):
        self._store = store if store is not None else get_store()

    def _day(self, on_date: date):
        """Active challenges covering on_date, with that date's events grouped per challenge."""
        by_challenge: Dict[int, List[DailyLogEvent]] = defaultdict(list)
        for event in self._store.get_events_on(on_date):
            by_challenge[event.challenge_id].append(event)
        return [
            (challenge, by_challenge.get(challenge.id, []))
            for challenge in self._store.get_active_challenges_in_range(on_date)
        ]

    def _visible(self) -> List[Challenge]:
        return [c for c in self._store.list_challenges() if not c.is_deleted]

    def logged_challenges(self, on_date: date) -> List[Challenge]:
        """Active challenges with a scorable status resolved for the date."""
        return [
            challenge for challenge, events in self._day(on_date)
            if resolve_scorable_status(events, on_date) is not None
        ]

    def unlogged_challenges(self, on_date: date) -> List[Challenge]:
        """Active challenges with no scorable event on the date (auto-skip candidates)."""
        return [
            challenge for challenge, events in self._day(on_date)
            if not any(e.status in SCORABLE_STATUSES for e in events)
        ]

    def challenges_with_status(self, on_date: date, status: LogStatus) -> List[Challenge]:
        resolver = resolve_scorable_status if status in SCORABLE_STATUSES else resolve_status
        return [
            challenge for challenge, events in self._day(on_date)
            if resolver(events, on_date) == status
        ]

    def concluding_challenges(self, on_date: date) -> List[Challenge]:
        """Challenges whose last day is on_date."""
        return [c for c in self._visible() if c.start_date <= on_date == c.end_date]

    def completed_challenges(self) -> List[Challenge]:
        finished = [c for c in self._visible() if not c.is_active]
        return sorted(finished, key=lambda c: (-c.end_date.toordinal(), c.id))

    def dates_with_status(self, status: LogStatus, before: Optional[date] = None) -> List[date]:
        """
        Distinct dates, newest first, on which any challenge resolved to status.

        Scorable statuses go through the scorable resolution so that audit
        markers on the same date do not hide them.
        """
        found = set()
        for challenge in self._visible():
            events = self._store.get_events(challenge.id)
            if status in SCORABLE_STATUSES:
                resolved: Dict[date, LogStatus] = resolve_scorable_days(events)
            else:
                resolved = {
                    day: resolve_status(events, day)
                    for day in {e.log_date for e in events}
                }
            found.update(day for day, value in resolved.items() if value == status)

        if before is not None:
            found = {day for day in found if day < before}
        return sorted(found, reverse=True)

    def summary(self, on_date: date) -> Dict[str, object]:
        return {
            "date": on_date.isoformat(),
            "active": len(self._day(on_date)),
            "logged": [c.id for c in self.logged_challenges(on_date)],
            "unlogged": [c.id for c in self.unlogged_challenges(on_date)],
            "followed": [c.id for c in self.challenges_with_status(on_date, LogStatus.FOLLOWED)],
            "skipped": [c.id for c in self.challenges_with_status(on_date, LogStatus.SKIPPED)],
            "concluding": [c.id for c in self.concluding_challenges(on_date)],
            "completed_total": len(self.completed_challenges()),
        }
