from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogStatus(str, Enum):
    PENDING = "PENDING"
    FOLLOWED = "FOLLOWED"
    NOT_FOLLOWED = "NOT_FOLLOWED"
    SKIPPED = "SKIPPED"
    CREATED = "CREATED"
    EDITED = "EDITED"
    DELETED = "DELETED"
    COMPLETED = "COMPLETED"


# Count toward days_logged and streaks.
SCORABLE_STATUSES: FrozenSet[LogStatus] = frozenset(
    {LogStatus.FOLLOWED, LogStatus.NOT_FOLLOWED, LogStatus.SKIPPED}
)

# Presence of any of these on a date means the date must not be auto-skipped.
ACTIONABLE_STATUSES: FrozenSet[LogStatus] = SCORABLE_STATUSES | {LogStatus.CREATED, LogStatus.EDITED}


def utc_now() -> datetime:
    """Timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def days_between(start: date, end: date) -> int:
    return (end - start).days


@dataclass
class Challenge:
    """
    A habit pursued over an inclusive date range.

    days_logged and is_active are cached aggregates derived from the daily log;
    they are only written by the lifecycle after a recompute.
    """

    id: int
    title: str
    start_date: date
    end_date: date
    description: Optional[str] = None
    is_active: bool = True
    days_logged: int = 0
    created_at: datetime = field(default_factory=utc_now)
    deleted_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        return days_between(self.start_date, self.end_date) + 1

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date


class NewLogEvent(BaseModel):
    """An event that has not been appended yet (no id, no appended_at)."""

    model_config = ConfigDict(frozen=True)

    challenge_id: int = Field(ge=1)
    log_date: date
    status: LogStatus
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def _blank_notes_are_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class DailyLogEvent(NewLogEvent):
    """
    An appended, immutable entry of the daily log.

    appended_at is stamped by the store at write time and is distinct from
    log_date; id reflects insertion order and breaks appended_at ties.
    """

    id: int = Field(ge=1)
    appended_at: datetime

    @field_validator("appended_at")
    @classmethod
    def _aware_appended_at(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def order_key(self):
        return (self.appended_at, self.id)
