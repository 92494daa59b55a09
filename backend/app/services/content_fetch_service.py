"""
Wellspring Backend - Remote Session Content Loader
===================================================

What:  Fetches a session's JSON document from its http(s) json_url.
Why:   The editor's "Load JSON" button; loading server-side avoids CORS
       problems on third-party hosts and gives one place for limits.
How:   httpx.AsyncClient streaming GET, guarded by a size limit, tenacity
       retries and a circuit breaker.
Who:   Called by POST /api/content/fetch; circuit state is reported by /health.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
       (transport errors and 5xx responses only; 4xx is the caller's problem)
    2. Circuit breaker shared by all fetches, so a dead host fails fast
    3. Response body is streamed and cut off at content_fetch_max_bytes

Error mapping:
    non-http(s) URL                     → ValidationError (400)
    circuit open                        → CircuitBreakerOpenError (503)
    retries exhausted / 4xx / bad JSON  → ContentFetchError (502)
    body too large                      → ContentFetchError (502)
"""

import json
import logging
import time
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from app.config import settings
from app.exceptions import CircuitBreakerOpenError, ContentFetchError, ValidationError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════


class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow the next request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe; uvicorn async workers share a single event loop per process.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through the circuit breaker.

        Raises:
            CircuitBreakerOpenError if circuit is OPEN and recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (upstream recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        """Record a failed fetch. May trigger CLOSED → OPEN transition."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Content Fetch Service
# ══════════════════════════════════════════════════════════════════════════


class UpstreamServerError(Exception):
    """5xx from the remote host; retried like a transport error."""

    def __init__(self, status_code: int):
        super().__init__(f"Upstream returned HTTP {status_code}")
        self.status_code = status_code


class ResponseTooLargeError(Exception):
    def __init__(self, limit: int):
        super().__init__(f"Response body exceeds {limit} bytes")
        self.limit = limit


RETRYABLE_ERRORS = (httpx.TransportError, UpstreamServerError)


class ContentFetchService:
    """
    Loads remote JSON documents with retries and a shared circuit breaker.

    Error Handling Chain:
        GET fails (transport error or 5xx) → tenacity retries with backoff
        → all retries fail → record circuit breaker failure → ContentFetchError
        → threshold reached → future fetches rejected instantly (503)
        → recovery timeout → one test fetch allowed (HALF_OPEN)

    Args (all default to settings; tests inject a MockTransport and zero wait):
        transport: Optional httpx transport
        wait: Optional tenacity wait strategy
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        max_attempts: Optional[int] = None,
        wait: Optional[wait_base] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.timeout = timeout or settings.content_fetch_timeout
        self.max_bytes = max_bytes or settings.content_fetch_max_bytes
        self.max_attempts = max_attempts or settings.retry_max_attempts
        # wait = min(max_wait, min_wait * 2^attempt) + random(0, 1)
        self.wait = wait if wait is not None else wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        )
        self.transport = transport
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def circuit_state(self) -> str:
        return self.circuit_breaker.state

    async def fetch_json(self, url: str) -> Any:
        """
        Fetch and decode the JSON document at `url`.

        Returns:
            The decoded JSON value (normally a session document dict)

        Raises:
            ValidationError: URL is not http(s)
            CircuitBreakerOpenError: Too many recent upstream failures
            ContentFetchError: Upstream unusable after retries, or bad body
        """
        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                message="Only http:// and https:// URLs can be loaded.",
                field="url",
            )

        self.circuit_breaker.can_execute()

        rid = request_id_var.get() or "-"
        host = parsed.netloc
        logger.info("[%s] Fetching JSON content from %s", rid, host)

        try:
            body = await self._get_with_retry(url, rid)
        except RETRYABLE_ERRORS as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] All fetch attempts to %s failed: %s", rid, host, str(e))
            raise ContentFetchError(
                message="The JSON host did not respond successfully. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"host": host, "attempts": self.max_attempts},
            )
        except httpx.HTTPStatusError as e:
            # Host answered; a 4xx says nothing about its health
            self.circuit_breaker.record_success()
            raise ContentFetchError(
                message=f"The JSON host answered with HTTP {e.response.status_code}.",
                context={"host": host, "status_code": e.response.status_code},
            )
        except ResponseTooLargeError as e:
            self.circuit_breaker.record_success()
            raise ContentFetchError(
                message="The JSON document is too large to load.",
                context={"host": host, "max_bytes": e.limit},
            )

        self.circuit_breaker.record_success()

        try:
            content = json.loads(body)
        except ValueError:
            raise ContentFetchError(
                message="The URL did not return valid JSON.",
                context={"host": host},
            )

        logger.info("[%s] Loaded %d bytes of JSON from %s", rid, len(body), host)
        return content

    async def _get_with_retry(self, url: str, rid: str) -> bytes:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.wait,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._get(url, rid)

    async def _get(self, url: str, rid: str) -> bytes:
        """
        One streaming GET.

        Raises UpstreamServerError for 5xx (retried), httpx.HTTPStatusError
        for other non-2xx, ResponseTooLargeError when the body passes max_bytes.
        """
        start_time = time.time()
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
        ) as client:
            async with client.stream("GET", url, headers={"Accept": "application/json"}) as response:
                if response.status_code >= 500:
                    logger.warning("[%s] Upstream HTTP %d", rid, response.status_code)
                    raise UpstreamServerError(response.status_code)
                response.raise_for_status()

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise ResponseTooLargeError(self.max_bytes)

                chunks = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise ResponseTooLargeError(self.max_bytes)
                    chunks.append(chunk)

        logger.debug(
            "[%s] GET completed in %.0fms (%d bytes)",
            rid,
            (time.time() - start_time) * 1000,
            received,
        )
        return b"".join(chunks)


content_fetch_service = ContentFetchService()
