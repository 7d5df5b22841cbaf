"""Single choke point that keeps challenge aggregates in step with the daily log."""

from __future__ import annotations

from datetime import date
from typing import Callable, Optional

from challenge_monitor.core.errors import NotFoundError
from challenge_monitor.core.logging import log_event
from challenge_monitor.core.metrics import challenges_completed_total, log_events_appended_total
from challenge_monitor.features.daily_log.event_store import EventLogStore
from challenge_monitor.features.progress.service import ProgressCalculator, ProgressUpdate
from challenge_monitor.models.challenge import DailyLogEvent, NewLogEvent, utc_today


class ChallengeLifecycle:
    """
    Recomputes a challenge after any append (create, edit, manual log, auto-skip).

    Every write path calls `append` (or `on_event_appended` after appending
    itself), so days_logged/is_active are never stale relative to the log.
    """

    def __init__(
        self,
        store: EventLogStore,
        calculator: Optional[ProgressCalculator] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._store = store
        self._calculator = calculator or ProgressCalculator()
        self._today = today or utc_today

    def append(self, event: NewLogEvent) -> DailyLogEvent:
        """Append through the store, then recompute the challenge."""
        stored = self._store.append_event(event)
        log_events_appended_total.inc(labels={"status": stored.status.value})
        self.on_event_appended(stored)
        return stored

    def on_event_appended(self, event: DailyLogEvent) -> ProgressUpdate:
        challenge = self._store.get_challenge(event.challenge_id)
        if challenge is None:
            raise NotFoundError(f"Challenge {event.challenge_id} not found")

        events = self._store.get_events(event.challenge_id)
        update = self._calculator.recompute(challenge, events, today=self._today())

        if update.was_modified:
            self._store.update_challenge_aggregates(
                challenge.id,
                update.challenge.days_logged,
                update.challenge.is_active,
            )
            log_event(
                "info",
                "challenge.aggregates_updated",
                challenge_id=challenge.id,
                event_type=event.status.value,
                log_date=event.log_date.isoformat(),
                extra={
                    "days_logged": update.challenge.days_logged,
                    "is_active": update.challenge.is_active,
                },
            )

        if update.completion_event is not None:
            completed = self._store.append_event(update.completion_event)
            log_events_appended_total.inc(labels={"status": completed.status.value})
            challenges_completed_total.inc()
            log_event(
                "info",
                "challenge.completed",
                challenge_id=challenge.id,
                event_type=completed.status.value,
                log_date=completed.log_date.isoformat(),
                extra={"days_logged": update.challenge.days_logged, "duration_days": update.challenge.duration_days},
            )

        return update
