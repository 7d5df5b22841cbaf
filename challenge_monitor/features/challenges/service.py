from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, List, Optional

from pydantic import ValidationError

from challenge_monitor.core.config import settings
from challenge_monitor.core.errors import (
    InactiveChallengeError,
    InvalidDateRangeError,
    MalformedEventError,
    NotFoundError,
)
from challenge_monitor.core.locks import ChallengeLocks
from challenge_monitor.core.logging import log_event
from challenge_monitor.features.autoskip.reconcile_job import AutoSkipReconciler, AutoSkipReport
from challenge_monitor.features.challenges.lifecycle import ChallengeLifecycle
from challenge_monitor.features.daily_log.event_store import EventLogStore, get_store
from challenge_monitor.features.daily_log.resolver import (
    events_for_date,
    resolve_scorable_days,
    resolve_status,
)
from challenge_monitor.features.progress.service import ProgressCalculator
from challenge_monitor.features.streaks.service import streak_calculator
from challenge_monitor.models.challenge import (
    SCORABLE_STATUSES,
    Challenge,
    DailyLogEvent,
    LogStatus,
    NewLogEvent,
    utc_now,
    utc_today,
)
from challenge_monitor.models.streak import StreakBoardEntry, StreakInfo


def build_log_event(
    challenge_id: int,
    log_date: date,
    status,
    notes: Optional[str] = None,
) -> NewLogEvent:
    """Validate raw input into an event; anything malformed never reaches the store."""
    try:
        return NewLogEvent(challenge_id=challenge_id, log_date=log_date, status=status, notes=notes)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedEventError(f"Malformed log event ({fields})") from exc


class ChallengeService:
    """Entry points for the UI layer and the scheduler."""

    def __init__(
        self,
        store: Optional[EventLogStore] = None,
        *,
        today: Optional[Callable[[], date]] = None,
        locks: Optional[ChallengeLocks] = None,
    ):
        self._store = store if store is not None else get_store()
        self._today = today or utc_today
        self._locks = locks or ChallengeLocks()
        self._lifecycle = ChallengeLifecycle(self._store, ProgressCalculator(), today=self._today)
        self._streaks = streak_calculator
        self._reconciler = AutoSkipReconciler(self._store, self._lifecycle, self._locks)

    @property
    def store(self) -> EventLogStore:
        return self._store

    @property
    def lifecycle(self) -> ChallengeLifecycle:
        return self._lifecycle

    def today(self) -> date:
        return self._today()

    # Challenge management ---------------------------------------------
    def create_challenge(
        self,
        *,
        title: str,
        start_date: date,
        end_date: date,
        description: Optional[str] = None,
    ) -> Challenge:
        title = (title or "").strip()
        if not title:
            raise MalformedEventError("Challenge title is required")
        if start_date > end_date:
            raise InvalidDateRangeError(
                f"start_date {start_date.isoformat()} is after end_date {end_date.isoformat()}"
            )

        challenge = self._store.create_challenge(
            title=title,
            description=_clean_text(description),
            start_date=start_date,
            end_date=end_date,
            created_at=utc_now(),
        )
        with self._locks.hold(challenge.id):
            self._lifecycle.append(
                build_log_event(challenge.id, self._today(), LogStatus.CREATED, "Challenge created")
            )
            if settings.SEED_PENDING_DAYS:
                day = start_date
                while day <= end_date:
                    self._lifecycle.append(build_log_event(challenge.id, day, LogStatus.PENDING))
                    day += timedelta(days=1)

        log_event(
            "info",
            "challenge.created",
            challenge_id=challenge.id,
            extra={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
        return self.get_challenge(challenge.id)

    def edit_challenge(
        self,
        challenge_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Challenge:
        with self._locks.hold(challenge_id):
            current = self.get_challenge(challenge_id)
            if current.is_deleted:
                raise InactiveChallengeError(f"Challenge {challenge_id} was deleted")

            new_title = current.title if title is None else title.strip()
            if not new_title:
                raise MalformedEventError("Challenge title is required")
            new_start = start_date or current.start_date
            new_end = end_date or current.end_date
            if new_start > new_end:
                raise InvalidDateRangeError(
                    f"start_date {new_start.isoformat()} is after end_date {new_end.isoformat()}"
                )
            # Every logged day stays inside the range, so days_logged <= duration_days
            stranded = sorted(
                day for day in resolve_scorable_days(self._store.get_events(challenge_id))
                if not new_start <= day <= new_end
            )
            if stranded:
                raise InvalidDateRangeError(
                    f"{len(stranded)} logged day(s) fall outside "
                    f"{new_start.isoformat()}..{new_end.isoformat()}, first {stranded[0].isoformat()}"
                )

            self._store.update_challenge_details(
                challenge_id,
                title=new_title,
                description=current.description if description is None else _clean_text(description),
                start_date=new_start,
                end_date=new_end,
            )
            self._lifecycle.append(
                build_log_event(challenge_id, self._today(), LogStatus.EDITED, f"Challenge edited: {new_title}")
            )
        return self.get_challenge(challenge_id)

    def delete_challenge(self, challenge_id: int) -> Challenge:
        """Soft delete: the challenge and its log stay queryable."""
        with self._locks.hold(challenge_id):
            current = self.get_challenge(challenge_id)
            if current.is_deleted:
                return current
            self._lifecycle.append(
                build_log_event(challenge_id, self._today(), LogStatus.DELETED, f"Challenge deleted: {current.title}")
            )
            self._store.mark_challenge_deleted(challenge_id, utc_now())
        log_event("info", "challenge.deleted", challenge_id=challenge_id)
        return self.get_challenge(challenge_id)

    def get_challenge(self, challenge_id: int) -> Challenge:
        challenge = self._store.get_challenge(challenge_id)
        if challenge is None:
            raise NotFoundError(f"Challenge {challenge_id} not found")
        return challenge

    def list_challenges(self, *, include_deleted: bool = False) -> List[Challenge]:
        return [
            c for c in self._store.list_challenges()
            if include_deleted or not c.is_deleted
        ]

    def get_log(self, challenge_id: int, on_date: Optional[date] = None) -> List[DailyLogEvent]:
        """Full log in append order, or one date's events oldest first."""
        self.get_challenge(challenge_id)
        if on_date is None:
            return self._store.get_events(challenge_id)
        return events_for_date(self._store.get_events(challenge_id, on_date), on_date)

    # Daily log ---------------------------------------------------------
    def log_day(
        self,
        challenge_id: int,
        log_date: date,
        status,
        notes: Optional[str] = None,
    ) -> DailyLogEvent:
        """
        Manual log entry point.

        Only FOLLOWED, NOT_FOLLOWED and SKIPPED can be logged by hand. Inactive
        challenges reject new logs; dates outside the range are rejected before
        anything is appended.
        """
        with self._locks.hold(challenge_id):
            challenge = self.get_challenge(challenge_id)
            event = build_log_event(challenge_id, log_date, status, notes)
            if event.status not in SCORABLE_STATUSES:
                raise MalformedEventError(f"Status {event.status.value} cannot be logged manually")
            if event.notes is not None and len(event.notes) > settings.MAX_NOTES_LENGTH:
                raise MalformedEventError(f"Notes exceed {settings.MAX_NOTES_LENGTH} characters")
            if not challenge.is_active:
                raise InactiveChallengeError(f"Challenge {challenge_id} is no longer active")
            if not challenge.covers(log_date):
                raise InvalidDateRangeError(
                    f"{log_date.isoformat()} is outside {challenge.start_date.isoformat()}..{challenge.end_date.isoformat()}"
                )
            stored = self._lifecycle.append(event)

        log_event(
            "info",
            "challenge.day_logged",
            challenge_id=challenge_id,
            event_type=stored.status.value,
            log_date=log_date.isoformat(),
        )
        return stored

    def get_resolved_status(self, challenge_id: int, on_date: date) -> LogStatus:
        self.get_challenge(challenge_id)
        return resolve_status(self._store.get_events(challenge_id, on_date), on_date)

    # Streaks -----------------------------------------------------------
    def get_streaks(self, challenge_id: int, today: Optional[date] = None) -> StreakInfo:
        challenge = self.get_challenge(challenge_id)
        events = self._store.get_events(challenge_id)
        return self._streaks.compute(challenge, events, today or self._today())

    def streak_board(self, today: Optional[date] = None) -> List[StreakBoardEntry]:
        entries = [
            (challenge, self._store.get_events(challenge.id))
            for challenge in self.list_challenges()
        ]
        return self._streaks.board(entries, today or self._today())

    # Reconciliation ----------------------------------------------------
    def run_auto_skip(self, target_date: date) -> List[int]:
        return self._reconciler.reconcile(target_date)

    def run_auto_skip_report(self, target_date: date) -> AutoSkipReport:
        return self._reconciler.run(target_date)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# Lazily built singleton used by routes and workers
_service_instance: Optional[ChallengeService] = None


def get_challenge_service() -> ChallengeService:
    global _service_instance
    if _service_instance is None:
        _service_instance = ChallengeService()
    return _service_instance


def reset_challenge_service() -> None:
    """FOR TESTING ONLY - drops the singleton so the next call rebuilds it."""
    global _service_instance
    _service_instance = None
