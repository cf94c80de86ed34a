"""
Request correlation middleware.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from eventreg.core.logging import get_logger

logger = get_logger(__name__)

# Polled every few seconds by orchestrators and Prometheus
UNLOGGED_PATHS = frozenset({"/health", "/metrics"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id into the structlog context so admission and cache logs
    for one call can be grouped. An X-Request-ID sent by a proxy is kept.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        path = request.url.path
        start = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request_failed", method=request.method, path=path)
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        if path not in UNLOGGED_PATHS:
            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response
