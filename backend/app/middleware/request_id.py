"""
Wellspring Backend - Request ID Middleware
===========================================

What:  Assigns a correlation ID to each request and returns it in X-Request-ID.
How:   Reuses a well-formed client-supplied X-Request-ID, otherwise generates
       a short UUID; stores it in a ContextVar for loggers and error bodies.
When:  Runs before the logging middleware so access logs carry the ID.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client IDs end up in logs and response headers; keep them short and plain
RE_CLIENT_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Client sent a valid X-Request-ID → use it (frontend-to-log tracing)
        2. Missing or malformed → generate a new 8-character ID
        3. Store in ContextVar and request.state, echo in the response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        client_rid = request.headers.get("X-Request-ID", "")
        rid = client_rid if RE_CLIENT_REQUEST_ID.match(client_rid) else new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
