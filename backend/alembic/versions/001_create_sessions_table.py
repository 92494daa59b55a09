"""Create sessions table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `sessions` table holding wellness session documents.
How:   PostgreSQL-specific types: UUID primary key, VARCHAR[] tags with a GIN
       index, JSONB content, TIMESTAMP WITH TIME ZONE.

Rollback: downgrade() drops the table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the sessions table; column docs live in app/models/session.py."""
    op.create_table(
        "sessions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "owner_id",
            sa.String(128),
            nullable=False,
            comment="Caller identity supplied by the auth gateway",
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.String(30)),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("json_url", sa.String(500), nullable=True),
        sa.Column(
            "content",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment="Structured session document",
        ),
        sa.Column("is_draft", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("last_auto_save", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    # Dashboard: WHERE owner_id = :owner ORDER BY created_at DESC
    op.create_index(
        "idx_sessions_owner_created_at",
        "sessions",
        ["owner_id", sa.text("created_at DESC")],
    )
    # Public browse: WHERE is_published ORDER BY created_at DESC
    op.create_index(
        "idx_sessions_published_created_at",
        "sessions",
        ["is_published", sa.text("created_at DESC")],
    )
    # Tag filter: WHERE tags && ARRAY[...]
    op.create_index(
        "idx_sessions_tags",
        "sessions",
        ["tags"],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("idx_sessions_tags", table_name="sessions")
    op.drop_index("idx_sessions_published_created_at", table_name="sessions")
    op.drop_index("idx_sessions_owner_created_at", table_name="sessions")
    op.drop_table("sessions")
