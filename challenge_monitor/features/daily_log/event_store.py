"""
challenge_monitor/features/daily_log/event_store.py

Append-only store for challenges and their daily log.
In-memory implementation; SqlEventLogStore (event_store_sql.py) keeps the
same interface on top of SQLAlchemy.
"""

import threading
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

from challenge_monitor.models.challenge import (
    Challenge,
    DailyLogEvent,
    NewLogEvent,
    utc_now,
)


class EventLogStore(Protocol):
    """Storage collaborator consumed by the lifecycle, reconciler and services."""

    def create_challenge(
        self,
        *,
        title: str,
        description: Optional[str],
        start_date: date,
        end_date: date,
        created_at: Optional[datetime] = None,
    ) -> Challenge: ...

    def get_challenge(self, challenge_id: int) -> Optional[Challenge]: ...

    def list_challenges(self) -> List[Challenge]: ...

    def update_challenge_details(
        self,
        challenge_id: int,
        *,
        title: str,
        description: Optional[str],
        start_date: date,
        end_date: date,
    ) -> Challenge: ...

    def mark_challenge_deleted(self, challenge_id: int, deleted_at: datetime) -> None: ...

    def append_event(self, event: NewLogEvent) -> DailyLogEvent: ...

    def get_events(self, challenge_id: int, on_date: Optional[date] = None) -> List[DailyLogEvent]: ...

    def get_events_on(self, on_date: date) -> List[DailyLogEvent]: ...

    def get_active_challenges_in_range(self, on_date: date) -> List[Challenge]: ...

    def update_challenge_aggregates(self, challenge_id: int, days_logged: int, is_active: bool) -> None: ...


def sort_challenges(challenges: List[Challenge]) -> List[Challenge]:
    """Active first, then most recent start date, then id."""
    return sorted(
        challenges,
        key=lambda c: (not c.is_active, -c.start_date.toordinal(), c.id),
    )


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class InMemoryEventLogStore:
    """
    Dict/list backed store.

    Returns copies, never references: challenges are dataclass copies and
    events are frozen models.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self._challenges: Dict[int, Challenge] = {}
        self._events: List[DailyLogEvent] = []
        self._next_challenge_id = 1
        self._next_event_id = 1
        self._last_appended_at: Optional[datetime] = None
        self._lock = threading.Lock()

    # Challenges -------------------------------------------------------
    def create_challenge(
        self,
        *,
        title: str,
        description: Optional[str],
        start_date: date,
        end_date: date,
        created_at: Optional[datetime] = None,
    ) -> Challenge:
        with self._lock:
            challenge = Challenge(
                id=self._next_challenge_id,
                title=title,
                description=description,
                start_date=start_date,
                end_date=end_date,
                created_at=_aware(created_at or self._clock()),
            )
            self._challenges[challenge.id] = challenge
            self._next_challenge_id += 1
            return replace(challenge)

    def get_challenge(self, challenge_id: int) -> Optional[Challenge]:
        with self._lock:
            challenge = self._challenges.get(challenge_id)
            return replace(challenge) if challenge else None

    def list_challenges(self) -> List[Challenge]:
        with self._lock:
            return sort_challenges([replace(c) for c in self._challenges.values()])

    def update_challenge_details(
        self,
        challenge_id: int,
        *,
        title: str,
        description: Optional[str],
        start_date: date,
        end_date: date,
    ) -> Challenge:
        with self._lock:
            current = self._challenges[challenge_id]
            updated = replace(
                current,
                title=title,
                description=description,
                start_date=start_date,
                end_date=end_date,
            )
            self._challenges[challenge_id] = updated
            return replace(updated)

    def mark_challenge_deleted(self, challenge_id: int, deleted_at: datetime) -> None:
        with self._lock:
            current = self._challenges[challenge_id]
            self._challenges[challenge_id] = replace(
                current, deleted_at=_aware(deleted_at), is_active=False
            )

    def get_active_challenges_in_range(self, on_date: date) -> List[Challenge]:
        with self._lock:
            return sort_challenges([
                replace(c) for c in self._challenges.values()
                if c.is_active and not c.is_deleted and c.covers(on_date)
            ])

    def update_challenge_aggregates(self, challenge_id: int, days_logged: int, is_active: bool) -> None:
        with self._lock:
            current = self._challenges[challenge_id]
            self._challenges[challenge_id] = replace(
                current, days_logged=days_logged, is_active=is_active
            )

    # Events -----------------------------------------------------------
    def append_event(self, event: NewLogEvent) -> DailyLogEvent:
        """
        Append an event, stamping id and appended_at.

        appended_at never goes backwards: a clock reading older than the last
        stamp is clamped to it, and the id orders the tie.
        """
        with self._lock:
            stamp = _aware(self._clock())
            if self._last_appended_at is not None and stamp < self._last_appended_at:
                stamp = self._last_appended_at
            stored = DailyLogEvent(
                id=self._next_event_id,
                challenge_id=event.challenge_id,
                log_date=event.log_date,
                status=event.status,
                notes=event.notes,
                appended_at=stamp,
            )
            self._events.append(stored)
            self._next_event_id += 1
            self._last_appended_at = stamp
            return stored

    def get_events(self, challenge_id: int, on_date: Optional[date] = None) -> List[DailyLogEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.challenge_id == challenge_id and (on_date is None or e.log_date == on_date)
            ]

    def get_events_on(self, on_date: date) -> List[DailyLogEvent]:
        with self._lock:
            return [e for e in self._events if e.log_date == on_date]

    def count(self) -> int:
        """Return total number of events in store."""
        with self._lock:
            return len(self._events)

    def clear(self) -> None:
        """
        Clear all challenges and events.
        FOR TESTING ONLY.
        """
        with self._lock:
            self._challenges.clear()
            self._events.clear()
            self._next_challenge_id = 1
            self._next_event_id = 1
            self._last_appended_at = None


# ============================================================================
# Store selection
# ============================================================================

def get_event_store():
    """
    Get the appropriate store implementation.

    - SQL store when DATABASE_URL is configured and reachable
    - Falls back to in-memory otherwise
    """
    import logging
    import os

    logger = logging.getLogger("challenge_monitor")

    # Check DATABASE_URL directly from environment (not cached settings)
    database_url = os.getenv("DATABASE_URL")

    if database_url:
        try:
            from challenge_monitor.core.database import check_connection, create_all_tables
            from challenge_monitor.features.daily_log.event_store_sql import SqlEventLogStore

            if check_connection():
                create_all_tables()
                return SqlEventLogStore()
            logger.warning("[event_store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[event_store] failed to initialize SQL store: {e}; falling back to in-memory")

    return InMemoryEventLogStore()


# Global store instance (lazy initialization)
_store_instance = None


def get_store():
    """
    Get the singleton store instance.

    This is the primary API that all consumers should use.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = get_event_store()
    return _store_instance


def reset_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
