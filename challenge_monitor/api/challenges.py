from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service
from challenge_monitor.models.challenge import Challenge, DailyLogEvent

router = APIRouter()


class CreateChallengeRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: date
    end_date: date


class EditChallengeRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class LogDayRequest(BaseModel):
    # Kept as a plain string: unknown or non-loggable statuses are rejected by the service
    log_date: date
    status: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ChallengeResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    duration_days: int
    days_logged: int
    is_active: bool
    is_deleted: bool
    created_at: datetime
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_challenge(cls, challenge: Challenge) -> "ChallengeResponse":
        return cls(
            id=challenge.id,
            title=challenge.title,
            description=challenge.description,
            start_date=challenge.start_date,
            end_date=challenge.end_date,
            duration_days=challenge.duration_days,
            days_logged=challenge.days_logged,
            is_active=challenge.is_active,
            is_deleted=challenge.is_deleted,
            created_at=challenge.created_at,
            deleted_at=challenge.deleted_at,
        )


class LogEventResponse(BaseModel):
    id: int
    challenge_id: int
    log_date: date
    status: str
    notes: Optional[str] = None
    appended_at: datetime

    @classmethod
    def from_event(cls, event: DailyLogEvent) -> "LogEventResponse":
        return cls(
            id=event.id,
            challenge_id=event.challenge_id,
            log_date=event.log_date,
            status=event.status.value,
            notes=event.notes,
            appended_at=event.appended_at,
        )


class ChallengeListResponse(BaseModel):
    challenges: List[ChallengeResponse]


class LogListResponse(BaseModel):
    challenge_id: int
    events: List[LogEventResponse]


class LogDayResponse(BaseModel):
    event: LogEventResponse
    challenge: ChallengeResponse


class ResolvedStatusResponse(BaseModel):
    challenge_id: int
    log_date: date
    status: str


@router.post("/v1/challenges", response_model=ChallengeResponse, status_code=201)
def create_challenge(
    req: CreateChallengeRequest,
    service: ChallengeService = Depends(get_challenge_service),
):
    challenge = service.create_challenge(
        title=req.title,
        description=req.description,
        start_date=req.start_date,
        end_date=req.end_date,
    )
    return ChallengeResponse.from_challenge(challenge)


@router.get("/v1/challenges", response_model=ChallengeListResponse)
def list_challenges(
    include_deleted: bool = Query(False),
    service: ChallengeService = Depends(get_challenge_service),
):
    challenges = service.list_challenges(include_deleted=include_deleted)
    return ChallengeListResponse(challenges=[ChallengeResponse.from_challenge(c) for c in challenges])


@router.get("/v1/challenges/{challenge_id}", response_model=ChallengeResponse)
def get_challenge(challenge_id: int, service: ChallengeService = Depends(get_challenge_service)):
    return ChallengeResponse.from_challenge(service.get_challenge(challenge_id))


@router.patch("/v1/challenges/{challenge_id}", response_model=ChallengeResponse)
def edit_challenge(
    challenge_id: int,
    req: EditChallengeRequest,
    service: ChallengeService = Depends(get_challenge_service),
):
    challenge = service.edit_challenge(
        challenge_id,
        title=req.title,
        description=req.description,
        start_date=req.start_date,
        end_date=req.end_date,
    )
    return ChallengeResponse.from_challenge(challenge)


@router.delete("/v1/challenges/{challenge_id}", response_model=ChallengeResponse)
def delete_challenge(challenge_id: int, service: ChallengeService = Depends(get_challenge_service)):
    return ChallengeResponse.from_challenge(service.delete_challenge(challenge_id))


@router.post("/v1/challenges/{challenge_id}/logs", response_model=LogDayResponse, status_code=201)
def log_day(
    challenge_id: int,
    req: LogDayRequest,
    service: ChallengeService = Depends(get_challenge_service),
):
    """Append a FOLLOWED / NOT_FOLLOWED / SKIPPED entry for one day."""
    event = service.log_day(challenge_id, req.log_date, req.status.strip().upper(), req.notes)
    return LogDayResponse(
        event=LogEventResponse.from_event(event),
        challenge=ChallengeResponse.from_challenge(service.get_challenge(challenge_id)),
    )


@router.get("/v1/challenges/{challenge_id}/logs", response_model=LogListResponse)
def get_log(
    challenge_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    service: ChallengeService = Depends(get_challenge_service),
):
    events = service.get_log(challenge_id, on_date)
    return LogListResponse(
        challenge_id=challenge_id,
        events=[LogEventResponse.from_event(e) for e in events],
    )


@router.get("/v1/challenges/{challenge_id}/status", response_model=ResolvedStatusResponse)
def get_resolved_status(
    challenge_id: int,
    on_date: date = Query(..., alias="date"),
    service: ChallengeService = Depends(get_challenge_service),
):
    status = service.get_resolved_status(challenge_id, on_date)
    return ResolvedStatusResponse(challenge_id=challenge_id, log_date=on_date, status=status.value)
