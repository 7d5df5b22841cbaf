from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional

from challenge_monitor.core.config import settings
from challenge_monitor.features.daily_log.resolver import resolve_scorable_days
from challenge_monitor.models.challenge import (
    Challenge,
    DailyLogEvent,
    LogStatus,
    NewLogEvent,
    utc_today,
)


@dataclass(frozen=True)
class ProgressUpdate:
    """Result of a recompute: the updated challenge plus what the caller must persist."""

    challenge: Challenge
    was_modified: bool
    completion_event: Optional[NewLogEvent] = None

    @property
    def completed(self) -> bool:
        return self.completion_event is not None


class ProgressCalculator:
    """Derives days_logged and completion state from a challenge's full event history."""

    def __init__(self, completion_note: Optional[str] = None):
        self._completion_note = completion_note or settings.COMPLETION_NOTE

    def recompute(
        self,
        challenge: Challenge,
        events: Iterable[DailyLogEvent],
        *,
        today: Optional[date] = None,
    ) -> ProgressUpdate:
        """
        Recount distinct scorable days and flip the challenge inactive once complete.

        Pure: the returned challenge is a copy, and the COMPLETED event (if any)
        is handed back for the caller to append. A challenge that is already
        inactive never produces a second COMPLETED event.
        """
        scorable_days = resolve_scorable_days(
            e for e in events if e.challenge_id == challenge.id
        )
        logged = len(scorable_days)

        updated = challenge
        was_modified = False
        if challenge.days_logged != logged:
            updated = replace(updated, days_logged=logged)
            was_modified = True

        completion_event: Optional[NewLogEvent] = None
        if updated.is_active and logged >= updated.duration_days:
            updated = replace(updated, is_active=False)
            was_modified = True
            completion_event = NewLogEvent(
                challenge_id=challenge.id,
                log_date=today or utc_today(),
                status=LogStatus.COMPLETED,
                notes=self._completion_note,
            )

        return ProgressUpdate(
            challenge=updated,
            was_modified=was_modified,
            completion_event=completion_event,
        )
