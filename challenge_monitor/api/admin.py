from __future__ import annotations

from datetime import date
from typing import Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service
from challenge_monitor.workers.auto_skip import run_auto_skip_job

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class AutoSkipRequest(BaseModel):
    target_date: date


class AutoSkipResponse(BaseModel):
    target_date: str
    examined: int
    skipped: List[int]
    failed: Dict[str, str]
    skipped_count: int
    failed_count: int


@router.post("/auto-skip", response_model=AutoSkipResponse)
def trigger_auto_skip(
    req: AutoSkipRequest,
    service: ChallengeService = Depends(get_challenge_service),
):
    """Run the auto-skip reconciliation for one date on demand."""
    return AutoSkipResponse(**run_auto_skip_job(req.target_date, service=service))
