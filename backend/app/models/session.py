"""
Wellspring Backend - WellnessSession SQLAlchemy Model
======================================================

What:  ORM model representing the `sessions` table in PostgreSQL.
How:   Inherits from SQLAlchemy's DeclarativeBase; Alembic reads this for migrations.
Who:   Used by SessionService for CRUD operations and by Alembic for schema management.
When:  Created from the editor; updated by auto-save and publish; listed by
       the public browser and the "my sessions" dashboard.

Table Design:
    - UUID primary key: IDs appear in public URLs, so they must not be guessable
    - owner_id: Opaque identity string from the auth gateway (no users table here)
    - tags: Native ARRAY with a GIN index for "any of these tags" filtering
    - content: JSONB session document (title, description, exercises, ...)
    - is_draft / is_published: Two flags, mirroring the editor's lifecycle;
      a published session is never a draft
    - last_auto_save: Separate from updated_at so the editor can show
      "auto-saved 10s ago" without confusing it with explicit saves

Indexes:
    (owner_id, created_at DESC)      → "my sessions" dashboard
    (is_published, created_at DESC)  → public browse page
    GIN(tags)                        → tag filter (tags && ARRAY[...])
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import Boolean, Index, String, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WellnessSession(Base):
    """
    A wellness session authored by one user.

    Lifecycle:
        1. Created as a draft (is_draft=True, is_published=False)
        2. Auto-saved / edited any number of times (updated_at, last_auto_save)
        3. Published (is_published=True, is_draft=False) → visible publicly
        4. Deleted by its owner
    """

    __tablename__ = "sessions"

    # ── Primary Key ───────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    # ── Ownership ─────────────────────────────────────────────────────────
    owner_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Caller identity supplied by the auth gateway",
    )

    # ── Document Metadata ─────────────────────────────────────────────────
    title: Mapped[str] = mapped_column(String(100), nullable=False)

    tags: Mapped[List[str]] = mapped_column(
        ARRAY(String(30)),
        nullable=False,
        default=list,
        server_default=text("'{}'"),
    )

    # http(s) URL or bare "<name>.json" filename
    json_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # ── Document Body ─────────────────────────────────────────────────────
    content: Mapped[Dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
        comment="Structured session document",
    )

    # ── Lifecycle Flags ───────────────────────────────────────────────────
    is_draft: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # ── Timestamps (UTC) ──────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    last_auto_save: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        default=None,
    )

    __table_args__ = (
        Index("idx_sessions_owner_created_at", "owner_id", created_at.desc()),
        Index("idx_sessions_published_created_at", "is_published", created_at.desc()),
        Index("idx_sessions_tags", "tags", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return (
            f"<WellnessSession(id={self.id}, title='{self.title}', "
            f"published={self.is_published})>"
        )
