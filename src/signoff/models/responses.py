# src/signoff/models/responses.py
"""Read models returned by the review operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from .base_model import SignoffBaseModel
from .participant import ParticipantStatus
from .review import ReviewStatus


class AssetSnapshot(SignoffBaseModel):
    """Reference to the asset under review."""

    id: str
    name: str
    type: str
    url: str | None = None


class PortalComment(SignoffBaseModel):
    id: UUID
    review_id: UUID
    participant_id: UUID
    author_name: str | None = None
    content: str
    metadata: dict[str, Any] | None = None
    created_at: datetime


class ReviewPortalData(SignoffBaseModel):
    """Everything an external reviewer sees for one review version."""

    review_id: UUID
    review_version_id: UUID
    version_number: int
    title: str
    description: str | None = None
    status: ReviewStatus
    participant_id: UUID
    participant_status: ParticipantStatus
    asset_snapshot: AssetSnapshot | None = None
    comments: list[PortalComment] = Field(default_factory=list)


class ParticipantHistoryInfo(SignoffBaseModel):
    email: str
    status: ParticipantStatus


class ReviewHistoryItem(SignoffBaseModel):
    """Summary of one review on an asset, for internal dashboards."""

    review_id: UUID
    title: str
    status: ReviewStatus
    created_at: datetime
    initiated_by: str | None = None
    latest_version_number: int
    participants: list[ParticipantHistoryInfo] = Field(default_factory=list)
    comments_count: int = 0


class ParticipantToken(SignoffBaseModel):
    participant_id: UUID
    email: str
    token: str


class InitiateReviewResult(SignoffBaseModel):
    review_id: UUID
    review_version_id: UUID
    participant_tokens: list[ParticipantToken]


class CommentCreated(SignoffBaseModel):
    comment_id: UUID


class TokenContext(SignoffBaseModel):
    """Review context resolved from a presented token."""

    token_id: UUID
    review_id: UUID
    participant_id: UUID
    review_version_id: UUID
    reviewer_email: str


__all__ = [
    "AssetSnapshot",
    "PortalComment",
    "ReviewPortalData",
    "ParticipantHistoryInfo",
    "ReviewHistoryItem",
    "ParticipantToken",
    "InitiateReviewResult",
    "CommentCreated",
    "TokenContext",
]
