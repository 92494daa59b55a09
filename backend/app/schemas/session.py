"""
Wellspring Backend - Session Request/Response Schemas
======================================================

What:  Pydantic models defining the sessions API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI doc generation.
Who:   Used by route handlers as request bodies and response models.
When:  Validated on every request (input) and serialized on every response (output).

Shape rules (trimming, lengths, tag de-duplication) live here and surface
as 422. Business rules that depend on more than one field, such as the
json_url format and its title-derived default, live in SessionService and
surface as ValidationError (400).
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

TITLE_MAX_LENGTH = 100
TAG_MAX_LENGTH = 30


def _clean_title(value: str) -> str:
    title = value.strip()
    if not title:
        raise ValueError("Title must not be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValueError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _clean_tags(values: List[str]) -> List[str]:
    """Trim tags, drop blanks and duplicates, keep first-seen order."""
    cleaned: List[str] = []
    for value in values:
        tag = value.strip()
        if not tag or tag in cleaned:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag '{tag}' is longer than {TAG_MAX_LENGTH} characters")
        cleaned.append(tag)
    return cleaned


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SessionCreate(BaseModel):
    """Body of POST /api/sessions. New sessions always start as drafts."""

    title: str = Field(description="Session title (trimmed, 1-100 characters)")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    json_url: Optional[str] = Field(
        default=None,
        description="http(s) URL or '<name>.json'; derived from the title when omitted",
    )
    content: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Structured session document",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class SessionUpdate(BaseModel):
    """
    Body of PUT /api/sessions/{id}.

    Only fields present in the request body are applied; `is_auto_save`
    marks editor auto-saves so last_auto_save can be refreshed.
    """

    title: Optional[str] = None
    tags: Optional[List[str]] = None
    json_url: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    is_auto_save: bool = Field(default=False, description="True for editor auto-saves")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_title(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else _clean_tags(v)


class FetchContentRequest(BaseModel):
    """Body of POST /api/content/fetch."""

    url: str = Field(min_length=1, max_length=2048, description="http(s) URL of a JSON document")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SessionListItem(BaseModel):
    """
    Session summary for list views.

    Leaves out `content`: list pages only show titles and tags, and the
    documents can be large.
    """

    id: uuid.UUID
    owner_id: str
    title: str
    tags: List[str] = Field(default_factory=list)
    json_url: Optional[str] = None
    is_draft: bool
    is_published: bool
    created_at: datetime
    updated_at: datetime
    last_auto_save: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SessionResponse(SessionListItem):
    """Full session, including the structured document."""

    content: Dict[str, Any] = Field(default_factory=dict)


class SessionListResponse(BaseModel):
    """
    Page of sessions.

    Offset pagination: page N of ceil(total_count / limit). The browse and
    dashboard pages render numbered page links, so they need total_pages.
    """

    sessions: List[SessionListItem]
    total_pages: int = Field(ge=0)
    current_page: int = Field(ge=1)
    total_count: int = Field(ge=0)


class SessionCreatedResponse(BaseModel):
    message: str = "Session created successfully"
    session: SessionResponse


class MessageResponse(BaseModel):
    message: str


class FetchContentResponse(BaseModel):
    content: Any = Field(description="Parsed JSON body of the remote document")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Please provide a valid URL or JSON filename",
            "details": {"field": "json_url"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    content_fetch: str = Field(description="Remote content loader: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
