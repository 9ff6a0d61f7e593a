"""
Observability Middleware.

Binds a correlation id to each request and writes one access line per request.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from fleetops.app.core.logging import correlation_id_var

logger = logging.getLogger("fleetops.http")

CORRELATION_HEADER = "X-Correlation-ID"

# Probes would drown the access log
QUIET_PATHS = {"/health"}


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        token = correlation_id_var.set(correlation_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            response.headers[CORRELATION_HEADER] = correlation_id
            response.headers["X-Process-Time"] = f"{elapsed_ms:.2f}"

            logger.log(
                _level_for(request.url.path, response.status_code),
                "%s %s -> %s (%.2f ms)",
                request.method, request.url.path, response.status_code, elapsed_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                    "ip": request.client.host if request.client else "unknown",
                },
            )
            return response
        finally:
            correlation_id_var.reset(token)
