# src/signoff/models/review.py
"""Data models for reviews and their numbered versions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from .mixins import IDMixin, TimestampsMixin, utcnow


class ReviewStatus(str, Enum):
    """Overall status of a review, derived from participant verdicts."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CHANGES_REQUESTED = "changes_requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class Review(IDMixin, TimestampsMixin):
    """One evaluation process requested against a single asset."""

    asset_id: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1, description="Tenant scope")
    title: str = Field(..., min_length=1)
    description: str | None = None
    status: ReviewStatus = ReviewStatus.PENDING
    initiator_id: str | None = Field(
        default=None, description="Internal user who started the review"
    )
    revision: int = Field(
        default=0,
        ge=0,
        description="Bumped on every verdict or status write; used for CAS",
    )


class ReviewVersion(IDMixin):
    """Immutable numbered round of a review."""

    review_id: UUID
    version_number: int = Field(..., ge=1)
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["Review", "ReviewStatus", "ReviewVersion"]
