import logging

from starlette.middleware.base import BaseHTTPMiddleware

from challenge_monitor.core.metrics import http_requests_total, normalize_path

logger = logging.getLogger("challenge_monitor")


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count every request by method, normalized path and status code."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        try:
            http_requests_total.inc(labels={
                "method": request.method.upper(),
                "path": normalize_path(request.url.path),
                "status": str(getattr(response, "status_code", 0) or 0),
            })
        except Exception as exc:
            # A metrics failure never fails the request
            logger.debug(f"[metrics] failed to record request: {exc}")
        return response
