from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service
from challenge_monitor.features.overview.service import DailyOverviewService

router = APIRouter()


class OverviewResponse(BaseModel):
    date: str
    active: int
    logged: List[int]
    unlogged: List[int]
    followed: List[int]
    skipped: List[int]
    concluding: List[int]
    completed_total: int


def get_overview_service(
    service: ChallengeService = Depends(get_challenge_service),
) -> DailyOverviewService:
    return DailyOverviewService(service.store)


@router.get("/v1/overview", response_model=OverviewResponse)
def get_overview(
    on_date: Optional[date] = Query(None, alias="date"),
    overview: DailyOverviewService = Depends(get_overview_service),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Dashboard counts for one day (defaults to today, UTC)."""
    target = on_date or service.today()
    return OverviewResponse(**overview.summary(target))
