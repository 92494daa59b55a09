"""
Wellspring Backend - Request Logging Middleware
================================================

What:  One access-log line per request on the "wellspring.access" logger.
How:   Measures wall time around the downstream app and picks the level
       from the outcome (see access_log_level). Fields are duplicated into
       `extra` so log shippers can index them without parsing the message.
When:  Runs inside RequestIDMiddleware, so every line carries the request ID.

Logged:     method, path, status, duration, request ID, client IP, caller id
Not logged: request bodies (session documents, free text), query strings
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.middleware.request_id import request_id_var

logger = logging.getLogger("wellspring.access")

# Probes and docs would drown out real traffic
QUIET_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def access_log_level(status: int, duration_ms: float, slow_ms: int) -> int:
    """
    5xx → ERROR, 4xx → WARNING, slow success → WARNING, otherwise INFO.

    Remote content loads are the usual slow requests; they still succeed,
    but a WARNING makes a struggling JSON host visible before the circuit opens.
    """
    if status >= 500:
        return logging.ERROR
    if status >= 400 or duration_ms >= slow_ms:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        fields = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
            # Header as sent; auth.get_current_user validates it separately
            "user_id": getattr(request.state, "user_id", None)
            or request.headers.get(settings.auth_user_header, "-"),
        }

        level = access_log_level(fields["status"], duration_ms, settings.slow_request_ms)
        logger.log(
            level,
            "%(method)s %(path)s %(status)d %(duration_ms).1fms [%(request_id)s] "
            "from %(client_ip)s user=%(user_id)s",
            fields,
            extra=fields,
        )
        return response
