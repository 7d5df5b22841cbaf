"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from challenge_monitor.core.database import get_engine
from challenge_monitor.features.challenges.service import ChallengeService, get_challenge_service
from challenge_monitor.features.daily_log.event_store_sql import SqlEventLogStore

logger = logging.getLogger("challenge_monitor")

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ("challenges", "daily_log_events")


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(service: ChallengeService = Depends(get_challenge_service)):
    """Readiness: the in-memory store is always ready; the SQL store needs its tables."""
    if not isinstance(service.store, SqlEventLogStore):
        return {"status": "ok", "store": "memory"}

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")

        inspector = inspect(engine)
        missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
        if missing:
            detail = f"missing tables: {', '.join(missing)}"
            logger.warning(f"[readyz] {detail}")
            return JSONResponse(status_code=503, content={"status": "error", "detail": detail})

        return {"status": "ok", "store": "sql"}
    except Exception as e:
        logger.error(f"[readyz] readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})
