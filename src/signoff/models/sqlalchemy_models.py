# src/signoff/models/sqlalchemy_models.py
"""SQLAlchemy ORM models for the review tables stored in PostgreSQL."""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from .base import Base


class AssetSQL(Base):
    """Asset row owned by the asset pipeline.

    The review engine only reads ``id``, ``name``, ``type`` and
    ``file_url`` to build the snapshot shown in the reviewer portal; the
    table is created and migrated elsewhere.
    """

    __tablename__ = "assets"
    __table_args__ = {"info": {"external": True}}
    id = Column(Text, primary_key=True)
    client_id = Column(Text)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    file_url = Column(Text)


class ReviewSQL(Base):
    """One evaluation process for one asset.

    ``status`` is the aggregate of participant verdicts and is written only
    by the approval aggregator.  ``revision`` is bumped on every verdict
    and status write so the aggregator can detect concurrent recomputation
    with a compare-and-swap update.
    """

    __tablename__ = "reviews"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    asset_id = Column(Text, nullable=False, index=True)
    client_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text)
    status = Column(String(32), nullable=False, server_default="pending")
    initiated_by_user_id = Column(Text)
    revision = Column(Integer, nullable=False, server_default="0")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())


class ReviewVersionSQL(Base):
    """Numbered round of a review; numbers run 1..N per review."""

    __tablename__ = "review_versions"
    __table_args__ = (
        UniqueConstraint("review_id", "version_number", name="uq_review_version_number"),
        CheckConstraint("version_number >= 1", name="ck_review_version_positive"),
    )
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    review_id = Column(
        UUID(as_uuid=True), ForeignKey("reviews.id"), nullable=False, index=True
    )
    version_number = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class ReviewParticipantSQL(Base):
    """Invited reviewer scoped to one review."""

    __tablename__ = "review_participants"
    __table_args__ = (
        UniqueConstraint("review_id", "email", name="uq_review_participant_email"),
    )
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    review_id = Column(
        UUID(as_uuid=True), ForeignKey("reviews.id"), nullable=False, index=True
    )
    user_id = Column(Text)
    email = Column(Text, nullable=False)
    name = Column(Text)
    status = Column(String(32), nullable=False, server_default="invited")
    added_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class ReviewCommentSQL(Base):
    """Append-only feedback entry on a review version."""

    __tablename__ = "review_comments"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    review_version_id = Column(
        UUID(as_uuid=True), ForeignKey("review_versions.id"), nullable=False, index=True
    )
    review_participant_id = Column(
        UUID(as_uuid=True), ForeignKey("review_participants.id"), nullable=False
    )
    comment_text = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class ReviewApprovalSQL(Base):
    """Append-only verdict history; participant status is authoritative."""

    __tablename__ = "review_approvals"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    review_version_id = Column(
        UUID(as_uuid=True), ForeignKey("review_versions.id"), nullable=False, index=True
    )
    review_participant_id = Column(
        UUID(as_uuid=True), ForeignKey("review_participants.id"), nullable=False
    )
    action = Column(String(32), nullable=False)
    comment = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class ReviewTokenSQL(Base):
    """Bearer credential for one participant, stored as a SHA-256 digest."""

    __tablename__ = "review_tokens"
    id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    review_participant_id = Column(
        UUID(as_uuid=True), ForeignKey("review_participants.id"), nullable=False
    )
    token_hash = Column(String(64), nullable=False, unique=True)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    used_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


__all__ = [
    "AssetSQL",
    "ReviewSQL",
    "ReviewVersionSQL",
    "ReviewParticipantSQL",
    "ReviewCommentSQL",
    "ReviewApprovalSQL",
    "ReviewTokenSQL",
]
