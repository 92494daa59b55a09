"""
Wellspring Backend - Session Route Handlers
============================================

What:  /api/sessions endpoints: public browsing, the owner's dashboard, and
       the editor's create / save / auto-save / publish / delete actions.
How:   Extracts query parameters and the caller identity, delegates to
       SessionService, returns JSON.

Route Inventory:
    GET    /api/sessions/public          published sessions (tag filter)
    GET    /api/sessions/public/{id}     one published session
    GET    /api/sessions/my              caller's sessions (status filter)
    GET    /api/sessions/my/{id}         one of the caller's sessions
    POST   /api/sessions                 create a draft (201)
    PUT    /api/sessions/{id}            save or auto-save
    POST   /api/sessions/{id}/publish    publish
    DELETE /api/sessions/{id}            delete

Caching Strategy:
    - Public detail: short shared cache (content changes only on re-publish)
    - Owner reads: never cached (drafts change on every auto-save)
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user
from app.config import settings
from app.database import get_db_session
from app.schemas.session import (
    ErrorResponse,
    MessageResponse,
    SessionCreate,
    SessionCreatedResponse,
    SessionListResponse,
    SessionResponse,
    SessionUpdate,
)
from app.services.session_service import session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])

_AUTH_RESPONSES = {401: {"description": "Missing caller identity", "model": ErrorResponse}}
_NOT_FOUND = {404: {"description": "Session not found", "model": ErrorResponse}}


# ══════════════════════════════════════════════════════════════════════════
# Public
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/public",
    response_model=SessionListResponse,
    summary="List published sessions",
    description=(
        "Published sessions, newest first. `tags` is a comma-separated list; "
        "sessions carrying ANY of them match. List items omit the document content."
    ),
)
async def list_public_sessions(
    response: Response,
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=settings.sessions_page_size, ge=1, le=100),
    tags: Optional[str] = Query(default=None, description="Comma-separated tags"),
    db: AsyncSession = Depends(get_db_session),
) -> SessionListResponse:
    result = await session_service.list_public(db, page=page, limit=limit, tags=tags)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/public/{session_id}",
    response_model=SessionResponse,
    responses=_NOT_FOUND,
    summary="Get a published session",
)
async def get_public_session(
    session_id: UUID,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    result = await session_service.get_public(db, session_id)
    response.headers["Cache-Control"] = "public, max-age=60"
    return result


# ══════════════════════════════════════════════════════════════════════════
# Owner
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/my",
    response_model=SessionListResponse,
    responses={**_AUTH_RESPONSES, 400: {"description": "Invalid status", "model": ErrorResponse}},
    summary="List the caller's sessions",
)
async def list_my_sessions(
    response: Response,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.sessions_page_size, ge=1, le=100),
    status: Optional[str] = Query(default=None, description="'draft' or 'published'"),
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionListResponse:
    result = await session_service.list_mine(
        db, owner_id, page=page, limit=limit, status=status
    )
    response.headers["Cache-Control"] = "private, no-store"
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/my/{session_id}",
    response_model=SessionResponse,
    responses={**_AUTH_RESPONSES, **_NOT_FOUND},
    summary="Get one of the caller's sessions",
)
async def get_my_session(
    session_id: UUID,
    response: Response,
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    result = await session_service.get_mine(db, owner_id, session_id)
    response.headers["Cache-Control"] = "private, no-store"
    return result


@router.post(
    "",
    status_code=201,
    response_model=SessionCreatedResponse,
    responses={**_AUTH_RESPONSES, 400: {"description": "Invalid json_url", "model": ErrorResponse}},
    summary="Create a draft session",
)
async def create_session(
    body: SessionCreate,
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionCreatedResponse:
    session = await session_service.create(db, owner_id, body)
    return SessionCreatedResponse(session=session)


@router.put(
    "/{session_id}",
    response_model=SessionResponse,
    responses={**_AUTH_RESPONSES, **_NOT_FOUND},
    summary="Save or auto-save a session",
    description="Only fields present in the body are changed. Set is_auto_save for editor auto-saves.",
)
async def update_session(
    session_id: UUID,
    body: SessionUpdate,
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    return await session_service.update(db, owner_id, session_id, body)


@router.post(
    "/{session_id}/publish",
    response_model=SessionResponse,
    responses={**_AUTH_RESPONSES, **_NOT_FOUND},
    summary="Publish a session",
)
async def publish_session(
    session_id: UUID,
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    return await session_service.publish(db, owner_id, session_id)


@router.delete(
    "/{session_id}",
    response_model=MessageResponse,
    responses={**_AUTH_RESPONSES, **_NOT_FOUND},
    summary="Delete a session",
)
async def delete_session(
    session_id: UUID,
    owner_id: str = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await session_service.delete(db, owner_id, session_id)
    return MessageResponse(message="Session deleted successfully")
