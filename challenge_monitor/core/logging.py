"""
Structured logging for the API and the auto-skip worker.

Production emits one JSON object per line; every other env gets a readable
single-line format. Records carry the request id (HTTP) and, where relevant,
the challenge id, event status and log date of the daily-log operation.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "challenge_monitor"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Record attributes promoted to top-level JSON keys
DOMAIN_FIELDS = ("challenge_id", "event_type", "log_date", "error_code")

_MAX_FIELD_CHARS = 500

# (upper bound in ms, label); anything slower falls into the last bucket
_LATENCY_BUCKETS = (
    (10, "<10ms"),
    (100, "10-100ms"),
    (500, "100-500ms"),
    (1000, "500-1000ms"),
)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return default if rid is None else rid


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    """Coarse latency label so request logs stay groupable."""
    if latency_ms is None:
        return "unknown"
    for bound, label in _LATENCY_BUCKETS:
        if latency_ms < bound:
            return label
    return ">=1000ms"


def _utc_iso(record: logging.LogRecord) -> str:
    stamp = datetime.fromtimestamp(record.created, timezone.utc)
    return stamp.isoformat().replace("+00:00", "Z")


class RequestIdFilter(logging.Filter):
    """Fill record.request_id from the context when the caller did not pass one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _utc_iso(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            (name, getattr(record, name))
            for name in DOMAIN_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = []
        rid = getattr(record, "request_id", None)
        if rid:
            tags.append(f"[rid={rid}]")
        cid = getattr(record, "challenge_id", None)
        if cid is not None:
            tags.append(f"[challenge={cid}]")
        day = getattr(record, "log_date", None)
        if day:
            tags.append(f"[date={day}]")

        prefix = " ".join([_utc_iso(record), record.levelname, f"[{LOGGER_NAME}]", *tags])
        line = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development", level: int = logging.INFO) -> None:
    """Install a single stdout handler on the package logger (idempotent)."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = True

    # uvicorn keeps its own handlers
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).propagate = False


def _clip(value, limit: int = _MAX_FIELD_CHARS) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    return text if len(text) <= limit else text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    challenge_id: Optional[int] = None,
    event_type: Optional[str] = None,
    log_date: Optional[str] = None,
    error_code: Optional[str] = None,
    request_id: Optional[str] = None,
    exc_info: bool = False,
    extra: Optional[Dict[str, object]] = None,
):
    """Emit one structured record on the package logger.

    `extra` values are stringified and clipped; the domain fields are kept
    as-is so JSON consumers can filter on them.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        # Workers and tests may log before main.py configured anything
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {
        "request_id": request_id or get_request_id(),
        "challenge_id": challenge_id,
        "event_type": event_type,
        "log_date": log_date,
        "error_code": error_code,
    }
    for key, value in (extra or {}).items():
        fields[key] = _clip(value)

    emit = getattr(logger, level, logger.info)
    emit(msg, extra=fields, exc_info=exc_info)
