"""
Bug Tracker Backend: Request Logging Middleware
=================================================

What:  One access-log line per API request, on the "bugtracker.access"
       logger.
When:  Runs inside RequestIDMiddleware so the request ID is already set.

Line format:
    PUT /api/bugs/3f2a... 200 41.7ms [a1b2c3d4] from 172.18.0.1

Probe traffic (GET /health) is skipped. Bodies and the Authorization header
are never logged: bug descriptions are free text and tokens are credentials.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bugtracker.middleware.request_id import request_id_var

logger = logging.getLogger("bugtracker.access")

UNLOGGED_PATHS = frozenset({"/health"})


def level_for_status(status_code: int) -> int:
    """5xx → ERROR, 4xx → WARNING, anything else → INFO."""
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }
        logger.log(
            level_for_status(response.status_code),
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] from %(client_ip)s",
            fields,
            extra=fields,
        )
        return response
