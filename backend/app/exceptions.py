"""
Wellspring Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every failure the API can report.
Why:   Each exception maps to one HTTP status code and one machine-readable
       error code, so services never deal with HTTP details.
How:   Every exception carries a user-facing message and an optional context
       dict. Global handlers in main.py turn them into JSON error bodies.
Who:   Raised by services, the converter, auth and middleware.
When:  During request processing.

Exception Hierarchy:
    WellspringError (base)
    ├── ValidationError              → 400 Bad Request
    │   ├── EmptyInputError          → 400 Bad Request (nothing to convert)
    │   └── InputTooLargeError       → 413 Payload Too Large
    ├── AuthenticationError          → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── ContentFetchError            → 502 Bad Gateway (remote JSON unusable)
    ├── CircuitBreakerOpenError      → 503 Service Unavailable
    ├── DatabaseError                → 500 Internal Server Error
    └── RateLimitExceededError       → 429 Too Many Requests

The converter only ever raises EmptyInputError and InputTooLargeError.
Everything else it meets is absorbed into the document or reported as a
soft warning.
"""

from typing import Any, Dict, Optional


class WellspringError(Exception):
    """
    Base exception for all Wellspring application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only returned for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WellspringError):
    """
    Raised when client input fails a business rule.

    When:    Invalid JSON URL, unsupported status filter, bad fetch URL.
    HTTP:    400 Bad Request

    Schema-level problems (wrong types, missing fields) are still reported
    by FastAPI itself with 422.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class EmptyInputError(ValidationError):
    """
    Raised when the text handed to the converter has no non-whitespace content.

    The caller should surface this to the user ("please enter some content to
    convert") instead of storing a placeholder document.
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Please enter some content to convert.",
            field="text",
            context=context,
        )


class InputTooLargeError(ValidationError):
    """
    Raised when converter input exceeds the configured line or character bound.

    HTTP:    413 Payload Too Large
    """

    def __init__(
        self,
        limit: int,
        actual: int,
        unit: str = "lines",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"limit": limit, "actual": actual, "unit": unit})
        super().__init__(
            message=(
                f"Input is too large to convert: {actual} {unit} "
                f"(maximum {limit} {unit})."
            ),
            field="text",
            context=ctx,
        )
        self.limit = limit
        self.actual = actual


class AuthenticationError(WellspringError):
    """
    Raised when a write operation arrives without a caller identity.

    HTTP:    401 Unauthorized

    Identity itself is established upstream (gateway / auth provider); this
    service only refuses requests where it is missing or malformed.
    """

    def __init__(
        self,
        message: str = "Authentication required.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(WellspringError):
    """
    Raised when a requested resource does not exist (or is not visible to the caller).

    HTTP:    404 Not Found

    Sessions owned by someone else are reported as missing, not forbidden,
    so IDs of private drafts cannot be probed.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ContentFetchError(WellspringError):
    """
    Raised when remote session JSON could not be loaded.

    When:    Upstream returned non-2xx after retries, the body was not JSON,
             or the body exceeded content_fetch_max_bytes.
    HTTP:    502 Bad Gateway
    """

    def __init__(
        self,
        message: str = "Could not load JSON content from the given URL.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(WellspringError):
    """
    Raised when the content fetch circuit breaker is OPEN.

    HTTP:    503 Service Unavailable

    State machine:
        CLOSED → (threshold consecutive failures) → OPEN
        OPEN → (recovery timeout elapsed) → HALF_OPEN
        HALF_OPEN → success → CLOSED, failure → OPEN
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Remote content loading is temporarily disabled after repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(WellspringError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the context
    (original exception type, IDs) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(WellspringError):
    """
    Raised when a caller exceeds its request budget.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
