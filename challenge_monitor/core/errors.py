"""Error taxonomy and the FastAPI handlers that render it."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from challenge_monitor.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    """Base for errors surfaced to callers with a stable code and HTTP status."""

    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.status_code = status_code or self.status_code
        self.request_id = request_id


class NotFoundError(AppError, LookupError):
    """Challenge id does not exist."""
    code = "not_found"
    status_code = 404


class InvalidDateRangeError(AppError, ValueError):
    """A log date falls outside [start_date, end_date], or the range itself is inverted."""
    code = "invalid_date_range"
    status_code = 422


class InactiveChallengeError(AppError):
    """Manual action attempted on a completed or deleted challenge."""
    code = "inactive_challenge"
    status_code = 409


class MalformedEventError(AppError, ValueError):
    """Event is missing required fields or carries a status that cannot be logged."""
    code = "malformed_event"
    status_code = 400


def _request_id_for(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def error_response(status_code: int, code: str, message: str, request_id: str) -> JSONResponse:
    """`{"error": {code, message, request_id}, "detail": message}` plus the x-request-id header."""
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "request_id": request_id},
            "detail": message,
        },
    )
    response.headers["x-request-id"] = request_id
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _request_id_for(request)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "status": exc.status_code, "path": request.url.path},
    )
    return error_response(exc.status_code, exc.code, exc.message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _request_id_for(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return error_response(exc.status_code, code, str(exc.detail or "HTTP error"), rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id_for(request)
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return error_response(500, "internal_error", "Unexpected error", rid)
