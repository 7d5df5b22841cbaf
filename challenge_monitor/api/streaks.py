from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service

router = APIRouter()


class StreakResponse(BaseModel):
    challenge_id: int
    current: int
    longest: int
    evaluated_through: Optional[date] = None


class StreakBoardRow(BaseModel):
    challenge_id: int
    title: str
    is_active: bool
    current: int
    longest: int


class StreakBoardResponse(BaseModel):
    streaks: List[StreakBoardRow]


@router.get("/v1/challenges/{challenge_id}/streaks", response_model=StreakResponse)
def get_streaks(
    challenge_id: int,
    today: Optional[date] = Query(None),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Current and longest FOLLOWED runs for one challenge."""
    info = service.get_streaks(challenge_id, today=today)
    return StreakResponse(**info.model_dump())


@router.get("/v1/streaks", response_model=StreakBoardResponse)
def get_streak_board(
    today: Optional[date] = Query(None),
    service: ChallengeService = Depends(get_challenge_service),
):
    rows = service.streak_board(today=today)
    return StreakBoardResponse(streaks=[StreakBoardRow(**row.model_dump()) for row in rows])
