"""
Wellspring Backend - Rate Limiting Middleware
==============================================

What:  Sliding-window rate limiter keyed by caller.
How:   Tracks request timestamps in memory per key. Owner routes are keyed
       by a well-formed caller identity header, so users behind one NAT do
       not share a budget; anonymous routes and malformed headers fall back
       to the client IP.

Budgets (from settings, per rate_limit_window seconds):
    all requests                  → rate_limit_requests
    writes (POST / PUT / DELETE)  → rate_limit_write_requests, counted separately

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window
    2. If remaining count >= limit, reject with 429 + Retry-After
    3. Otherwise record the current timestamp

Single-process only: state lives in this worker's memory.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.auth import RE_USER_ID
from app.config import settings
from app.exceptions import RateLimitExceededError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Excluded paths: /health and the API docs are never limited.

    Response on rate limit:
        HTTP 429 with the standard error body and a Retry-After header.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    ANONYMOUS_PATH_PREFIXES = ("/api/convert", "/api/sessions/public")

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        max_write_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.max_write_requests = max_write_requests or settings.rate_limit_write_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    @classmethod
    def client_key(cls, request: Request) -> str:
        """
        Identity header for owner routes when it is well formed; client IP
        otherwise. Anonymous routes never read the header, so rotating it
        does not buy a fresh budget.
        """
        path = request.url.path
        if not path.startswith(cls.ANONYMOUS_PATH_PREFIXES):
            user_id = (request.headers.get(settings.auth_user_header) or "").strip()
            if RE_USER_ID.match(user_id):
                return f"user:{user_id}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = self.client_key(request)
        now = time.time()

        try:
            self._check(key, self.max_requests, now)
            if request.method in WRITE_METHODS:
                self._check(f"{key}:write", self.max_write_requests, now)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for %s on %s %s",
                key,
                request.method,
                request.url.path,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        self._record(key, now)
        if request.method in WRITE_METHODS:
            self._record(f"{key}:write", now)

        return await call_next(request)

    def _check(self, key: str, limit: int, now: float) -> None:
        window_start = now - self.window_seconds
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps
        if len(timestamps) >= limit:
            retry_after = int(timestamps[0] + self.window_seconds - now) + 1
            raise RateLimitExceededError(retry_after=retry_after)

    def _record(self, key: str, now: float) -> None:
        self._requests[key].append(now)
        self._recorded += 1
        # Amortized cleanup of idle keys
        if self._recorded % 1000 == 0:
            self._cleanup_inactive(now - self.window_seconds)

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate limit keys", len(inactive))
