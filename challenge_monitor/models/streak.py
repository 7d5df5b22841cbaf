from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StreakInfo(BaseModel):
    """Consecutive-FOLLOWED streaks for one challenge, computed at display time."""

    model_config = ConfigDict(frozen=True)

    challenge_id: int
    current: int = Field(ge=0, description="Streak still open on the last evaluated day")
    longest: int = Field(ge=0, description="Longest run of FOLLOWED days in the evaluated range")
    evaluated_through: Optional[date] = Field(
        default=None,
        description="Last day walked (min(end_date, today)); None when the challenge has not started",
    )


class StreakBoardEntry(BaseModel):
    """One row of the streak board."""

    model_config = ConfigDict(frozen=True)

    challenge_id: int
    title: str
    is_active: bool
    current: int = Field(ge=0)
    longest: int = Field(ge=0)
