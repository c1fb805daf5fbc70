"""review tables

Revision ID: 20261019_review_tables
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261019_review_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()")
    )


def upgrade() -> None:
    # Owned by the asset pipeline; only created here for standalone deployments
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS assets (
            id TEXT PRIMARY KEY,
            client_id TEXT,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            file_url TEXT
        )
        """
    )

    op.create_table(
        "reviews",
        _uuid_pk(),
        sa.Column("asset_id", sa.Text(), nullable=False),
        sa.Column("client_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("initiated_by_user_id", sa.Text()),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True)),
    )
    op.create_index("ix_reviews_asset_id", "reviews", ["asset_id"])
    op.create_index("ix_reviews_client_id", "reviews", ["client_id"])

    op.create_table(
        "review_versions",
        _uuid_pk(),
        sa.Column(
            "review_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reviews.id"),
            nullable=False,
        ),
        sa.Column("version_number", sa.Integer(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("review_id", "version_number", name="uq_review_version_number"),
        sa.CheckConstraint("version_number >= 1", name="ck_review_version_positive"),
    )
    op.create_index("ix_review_versions_review_id", "review_versions", ["review_id"])

    op.create_table(
        "review_participants",
        _uuid_pk(),
        sa.Column(
            "review_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reviews.id"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Text()),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text()),
        sa.Column("status", sa.String(32), nullable=False, server_default="invited"),
        sa.Column(
            "added_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()")
        ),
        sa.UniqueConstraint("review_id", "email", name="uq_review_participant_email"),
    )
    op.create_index(
        "ix_review_participants_review_id", "review_participants", ["review_id"]
    )

    op.create_table(
        "review_comments",
        _uuid_pk(),
        sa.Column(
            "review_version_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("review_versions.id"),
            nullable=False,
        ),
        sa.Column(
            "review_participant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("review_participants.id"),
            nullable=False,
        ),
        sa.Column("comment_text", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON()),
        _created_at(),
    )
    op.create_index(
        "ix_review_comments_review_version_id", "review_comments", ["review_version_id"]
    )

    op.create_table(
        "review_approvals",
        _uuid_pk(),
        sa.Column(
            "review_version_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("review_versions.id"),
            nullable=False,
        ),
        sa.Column(
            "review_participant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("review_participants.id"),
            nullable=False,
        ),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("comment", sa.Text()),
        _created_at(),
    )
    op.create_index(
        "ix_review_approvals_review_version_id", "review_approvals", ["review_version_id"]
    )

    op.create_table(
        "review_tokens",
        _uuid_pk(),
        sa.Column(
            "review_participant_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("review_participants.id"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("used_at", sa.TIMESTAMP(timezone=True)),
        _created_at(),
    )


def downgrade() -> None:
    op.drop_table("review_tokens")
    op.drop_table("review_approvals")
    op.drop_table("review_comments")
    op.drop_table("review_participants")
    op.drop_table("review_versions")
    op.drop_table("reviews")
