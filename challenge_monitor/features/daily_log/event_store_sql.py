"""
challenge_monitor/features/daily_log/event_store_sql.py

SQLAlchemy-backed append-only store for challenges and the daily log.

This module maintains:
- Append-only semantics for daily_log_events
- Deterministic ordering by (appended_at, id)
- Non-decreasing appended_at stamps
- The same interface as InMemoryEventLogStore
"""

from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import and_, func, insert, select, update

from challenge_monitor.core.database import challenges, daily_log_events, get_db_session
from challenge_monitor.features.daily_log.event_store import sort_challenges
from challenge_monitor.models.challenge import (
    Challenge,
    DailyLogEvent,
    LogStatus,
    NewLogEvent,
    utc_now,
)


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _row_to_challenge(row) -> Challenge:
    return Challenge(
        id=row.id,
        title=row.title,
        description=row.description,
        start_date=row.start_date,
        end_date=row.end_date,
        is_active=bool(row.is_active),
        days_logged=row.days_logged,
        created_at=_aware(row.created_at),
        deleted_at=_aware(row.deleted_at),
    )


def _row_to_event(row) -> DailyLogEvent:
    return DailyLogEvent(
        id=row.id,
        challenge_id=row.challenge_id,
        log_date=row.log_date,
        status=LogStatus(row.status),
        notes=row.notes,
        appended_at=_aware(row.appended_at),
    )


class SqlEventLogStore:
    """
    SQL-backed store.

    Maintains identical interface to the in-memory store.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now

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
        stamp = _aware(created_at or self._clock())
        with get_db_session() as session:
            result = session.execute(
                insert(challenges).values(
                    title=title,
                    description=description,
                    start_date=start_date,
                    end_date=end_date,
                    duration_days=(end_date - start_date).days + 1,
                    is_active=True,
                    days_logged=0,
                    created_at=stamp,
                )
            )
            challenge_id = result.inserted_primary_key[0]
            row = session.execute(
                select(challenges).where(challenges.c.id == challenge_id)
            ).one()
            return _row_to_challenge(row)

    def get_challenge(self, challenge_id: int) -> Optional[Challenge]:
        with get_db_session() as session:
            row = session.execute(
                select(challenges).where(challenges.c.id == challenge_id)
            ).first()
            return _row_to_challenge(row) if row else None

    def list_challenges(self) -> List[Challenge]:
        with get_db_session() as session:
            rows = session.execute(select(challenges)).fetchall()
            return sort_challenges([_row_to_challenge(r) for r in rows])

    def update_challenge_details(
        self,
        challenge_id: int,
        *,
        title: str,
        description: Optional[str],
        start_date: date,
        end_date: date,
    ) -> Challenge:
        with get_db_session() as session:
            session.execute(
                update(challenges)
                .where(challenges.c.id == challenge_id)
                .values(
                    title=title,
                    description=description,
                    start_date=start_date,
                    end_date=end_date,
                    duration_days=(end_date - start_date).days + 1,
                )
            )
            row = session.execute(
                select(challenges).where(challenges.c.id == challenge_id)
            ).one()
            return _row_to_challenge(row)

    def mark_challenge_deleted(self, challenge_id: int, deleted_at: datetime) -> None:
        with get_db_session() as session:
            session.execute(
                update(challenges)
                .where(challenges.c.id == challenge_id)
                .values(deleted_at=_aware(deleted_at), is_active=False)
            )

    def get_active_challenges_in_range(self, on_date: date) -> List[Challenge]:
        with get_db_session() as session:
            rows = session.execute(
                select(challenges).where(
                    and_(
                        challenges.c.is_active.is_(True),
                        challenges.c.deleted_at.is_(None),
                        challenges.c.start_date <= on_date,
                        challenges.c.end_date >= on_date,
                    )
                )
            ).fetchall()
            return sort_challenges([_row_to_challenge(r) for r in rows])

    def update_challenge_aggregates(self, challenge_id: int, days_logged: int, is_active: bool) -> None:
        with get_db_session() as session:
            session.execute(
                update(challenges)
                .where(challenges.c.id == challenge_id)
                .values(days_logged=days_logged, is_active=is_active)
            )

    # Events -----------------------------------------------------------
    def append_event(self, event: NewLogEvent) -> DailyLogEvent:
        with get_db_session() as session:
            stamp = _aware(self._clock())
            last = _aware(session.execute(select(func.max(daily_log_events.c.appended_at))).scalar())
            if last is not None and stamp < last:
                stamp = last

            result = session.execute(
                insert(daily_log_events).values(
                    challenge_id=event.challenge_id,
                    log_date=event.log_date,
                    status=event.status.value,
                    notes=event.notes,
                    appended_at=stamp,
                )
            )
            event_id = result.inserted_primary_key[0]
            return DailyLogEvent(
                id=event_id,
                challenge_id=event.challenge_id,
                log_date=event.log_date,
                status=event.status,
                notes=event.notes,
                appended_at=stamp,
            )

    def get_events(self, challenge_id: int, on_date: Optional[date] = None) -> List[DailyLogEvent]:
        with get_db_session() as session:
            query = select(daily_log_events).where(daily_log_events.c.challenge_id == challenge_id)
            if on_date is not None:
                query = query.where(daily_log_events.c.log_date == on_date)

            # Order by appended_at, then id for deterministic ordering
            query = query.order_by(daily_log_events.c.appended_at, daily_log_events.c.id)
            return [_row_to_event(row) for row in session.execute(query)]

    def get_events_on(self, on_date: date) -> List[DailyLogEvent]:
        with get_db_session() as session:
            query = (
                select(daily_log_events)
                .where(daily_log_events.c.log_date == on_date)
                .order_by(daily_log_events.c.appended_at, daily_log_events.c.id)
            )
            return [_row_to_event(row) for row in session.execute(query)]

    def count(self) -> int:
        """Return total number of events in the log."""
        with get_db_session() as session:
            return session.execute(select(func.count()).select_from(daily_log_events)).scalar() or 0
