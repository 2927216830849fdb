"""
Quotebook Backend — Access Log Middleware
=========================================

What:  One log line per API call on the `quotebook.access` logger.
How:   Times the handler with perf_counter and logs method, path, status,
       duration, request id and client address. Request bodies are never
       logged: they carry passwords.

Example line:
    2026-01-15 12:00:00,000 [INFO] quotebook.access: GET /api/quotes 200 84.2ms [1f0c2a9e] from 127.0.0.1

Level by status:
    5xx → ERROR, 4xx → WARNING, everything else → INFO
    /health is not logged (probes hit it every few seconds).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from quotebook.middleware.request_id import request_id_var

logger = logging.getLogger("quotebook.access")

UNLOGGED_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with duration and correlation id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
