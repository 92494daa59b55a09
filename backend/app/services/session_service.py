"""
Wellspring Backend - Session Service (Business Logic)
=====================================================

What:  CRUD and lifecycle operations for wellness sessions.
Why:   Keeps ownership rules, pagination and json_url handling out of the routes.
Who:   Called by the /api/sessions route handlers.
When:  For every session read, write, publish and delete.

Visibility rules:
    Public reads  → only is_published=True rows
    Owner reads   → only rows whose owner_id matches the caller
    Owner writes  → same filter; someone else's session is reported as 404

Error Handling Strategy:
    NotFoundError and ValidationError propagate unchanged. Anything else
    raised while talking to the database is logged with its type and
    wrapped in DatabaseError, so internals never reach the client.
"""

import logging
import math
import re
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, NotFoundError, ValidationError, WellspringError
from app.models.session import WellnessSession
from app.schemas.session import (
    SessionCreate,
    SessionListItem,
    SessionListResponse,
    SessionResponse,
    SessionUpdate,
)

logger = logging.getLogger(__name__)

RE_HTTP_URL = re.compile(r"^https?://.+")
RE_JSON_FILENAME = re.compile(r"^[\w\-_.]+\.(json|JSON)$")

STATUS_FILTERS = ("draft", "published")
DEFAULT_JSON_FILENAME = "session.json"


def json_filename_for(title: str) -> str:
    """
    Derive the default JSON filename from a title.

    "Morning Flow!" → "morning-flow.json". Titles with nothing left after
    stripping special characters fall back to "session.json".
    """
    slug = title.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    if not slug:
        return DEFAULT_JSON_FILENAME
    return f"{slug}.json"


def resolve_json_url(json_url: Optional[str], title: str) -> str:
    """
    Validate a client-supplied json_url, or derive one from the title.

    Raises:
        ValidationError: value is neither an http(s) URL nor a '<name>.json' filename
    """
    value = (json_url or "").strip()
    if not value:
        return json_filename_for(title)
    if RE_HTTP_URL.match(value) or RE_JSON_FILENAME.match(value):
        return value
    raise ValidationError(
        message="Please provide a valid URL or JSON filename",
        field="json_url",
    )


def parse_tag_filter(tags: Optional[str]) -> List[str]:
    """'yoga, breathing,,' → ['yoga', 'breathing']"""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


class SessionService:
    """
    Stateless business logic for sessions.

    Every method receives the request's AsyncSession; commit/rollback is
    handled by the get_db_session dependency.
    """

    # ── Public reads ──────────────────────────────────────────────────────

    async def list_public(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        tags: Optional[str] = None,
    ) -> SessionListResponse:
        """
        Published sessions, newest first, optionally matching ANY of `tags`.

        Query plan (no tag filter):
            WHERE is_published ORDER BY created_at DESC LIMIT :limit OFFSET :offset
            → idx_sessions_published_created_at
        With tags: WHERE tags && ARRAY[...] → idx_sessions_tags (GIN)
        """
        filters = [WellnessSession.is_published.is_(True)]
        tag_list = parse_tag_filter(tags)
        if tag_list:
            filters.append(WellnessSession.tags.overlap(tag_list))

        return await self._paginate(
            db,
            filters=filters,
            order_by=desc(WellnessSession.created_at),
            page=page,
            limit=limit,
            operation="list_public",
        )

    async def get_public(self, db: AsyncSession, session_id: uuid.UUID) -> SessionResponse:
        session = await self._fetch_one(
            db,
            WellnessSession.id == session_id,
            WellnessSession.is_published.is_(True),
            session_id=session_id,
        )
        return SessionResponse.model_validate(session)

    # ── Owner reads ───────────────────────────────────────────────────────

    async def list_mine(
        self,
        db: AsyncSession,
        owner_id: str,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
    ) -> SessionListResponse:
        """
        The caller's sessions, most recently edited first.

        Args:
            status: "draft", "published" or None for everything
        """
        filters = [WellnessSession.owner_id == owner_id]
        if status == "draft":
            filters.append(WellnessSession.is_draft.is_(True))
        elif status == "published":
            filters.append(WellnessSession.is_published.is_(True))
        elif status:
            raise ValidationError(
                message=f"Invalid status '{status}'. Must be one of: {', '.join(STATUS_FILTERS)}",
                field="status",
            )

        return await self._paginate(
            db,
            filters=filters,
            order_by=desc(WellnessSession.updated_at),
            page=page,
            limit=limit,
            operation="list_mine",
        )

    async def get_mine(
        self,
        db: AsyncSession,
        owner_id: str,
        session_id: uuid.UUID,
    ) -> SessionResponse:
        session = await self._get_owned(db, owner_id, session_id)
        return SessionResponse.model_validate(session)

    # ── Owner writes ──────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        owner_id: str,
        payload: SessionCreate,
    ) -> SessionResponse:
        """
        Create a draft session.

        New sessions are always unpublished drafts; last_auto_save starts at
        creation time so the editor's "saved" indicator has a value.
        """
        json_url = resolve_json_url(payload.json_url, payload.title)
        now = _utcnow()
        session = WellnessSession(
            id=uuid.uuid4(),
            owner_id=owner_id,
            title=payload.title,
            tags=list(payload.tags),
            json_url=json_url,
            content=payload.content or {},
            is_draft=True,
            is_published=False,
            created_at=now,
            updated_at=now,
            last_auto_save=now,
        )
        try:
            db.add(session)
            await db.flush()
        except Exception as e:
            logger.error("Database error creating session: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the session. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Session %s created by %s", session.id, owner_id)
        return SessionResponse.model_validate(session)

    async def update(
        self,
        db: AsyncSession,
        owner_id: str,
        session_id: uuid.UUID,
        payload: SessionUpdate,
    ) -> SessionResponse:
        """
        Apply the fields present in `payload` (manual save or auto-save).

        Fields absent from the request body are left untouched; an explicit
        blank json_url is re-derived from the (possibly new) title.
        """
        session = await self._get_owned(db, owner_id, session_id)
        provided = payload.model_fields_set

        if "title" in provided and payload.title is not None:
            session.title = payload.title
        if "tags" in provided and payload.tags is not None:
            session.tags = list(payload.tags)
        if "json_url" in provided:
            session.json_url = resolve_json_url(payload.json_url, session.title)
        if "content" in provided:
            session.content = payload.content or {}

        now = _utcnow()
        session.updated_at = now
        if payload.is_auto_save:
            session.last_auto_save = now

        await self._flush(db, session_id, "update")
        logger.debug(
            "Session %s updated (%s)",
            session_id,
            "auto-save" if payload.is_auto_save else "save",
        )
        return SessionResponse.model_validate(session)

    async def publish(
        self,
        db: AsyncSession,
        owner_id: str,
        session_id: uuid.UUID,
    ) -> SessionResponse:
        """Mark a session published. Publishing an already published session is a no-op."""
        session = await self._get_owned(db, owner_id, session_id)
        session.is_published = True
        session.is_draft = False
        session.updated_at = _utcnow()

        await self._flush(db, session_id, "publish")
        logger.info("Session %s published by %s", session_id, owner_id)
        return SessionResponse.model_validate(session)

    async def delete(self, db: AsyncSession, owner_id: str, session_id: uuid.UUID) -> None:
        session = await self._get_owned(db, owner_id, session_id)
        try:
            await db.delete(session)
            await db.flush()
        except Exception as e:
            logger.error("Database error deleting session %s: %s", session_id, str(e))
            raise DatabaseError(
                message="Could not delete the session. Please try again.",
                context={"session_id": str(session_id)},
            )
        logger.info("Session %s deleted by %s", session_id, owner_id)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_owned(
        self,
        db: AsyncSession,
        owner_id: str,
        session_id: uuid.UUID,
    ) -> WellnessSession:
        return await self._fetch_one(
            db,
            WellnessSession.id == session_id,
            WellnessSession.owner_id == owner_id,
            session_id=session_id,
        )

    async def _fetch_one(self, db: AsyncSession, *filters, session_id: uuid.UUID) -> WellnessSession:
        try:
            result = await db.execute(select(WellnessSession).where(*filters))
            session = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching session %s: %s", session_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the session. Please try again.",
                context={"session_id": str(session_id)},
            )

        if session is None:
            raise NotFoundError(resource="session", resource_id=str(session_id))
        return session

    async def _flush(self, db: AsyncSession, session_id: uuid.UUID, operation: str) -> None:
        try:
            await db.flush()
        except WellspringError:
            raise
        except Exception as e:
            logger.error(
                "Database error during %s of session %s: %s", operation, session_id, str(e)
            )
            raise DatabaseError(
                message="Could not save the session. Please try again.",
                context={"session_id": str(session_id), "operation": operation},
            )

    async def _paginate(
        self,
        db: AsyncSession,
        filters: Sequence,
        order_by,
        page: int,
        limit: int,
        operation: str,
    ) -> SessionListResponse:
        """
        Offset pagination: one page query plus one COUNT(*) with the same filters.
        """
        try:
            query = (
                select(WellnessSession)
                .where(*filters)
                .order_by(order_by)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            result = await db.execute(query)
            sessions = list(result.scalars().all())

            count_query = select(func.count()).select_from(WellnessSession).where(*filters)
            count_result = await db.execute(count_query)
            total_count = count_result.scalar() or 0
        except Exception as e:
            logger.error("Database error in %s: %s", operation, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve sessions. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return SessionListResponse(
            sessions=[SessionListItem.model_validate(s) for s in sessions],
            total_pages=_total_pages(total_count, limit),
            current_page=page,
            total_count=total_count,
        )


session_service = SessionService()
