# src/signoff/models/comment.py
"""Data model for reviewer feedback."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from .base_model import SignoffBaseModel
from .mixins import IDMixin, utcnow


class CommentMetadata(SignoffBaseModel):
    """Optional annotation attached to a comment."""

    model_config = ConfigDict(extra="allow")

    ts: float | None = Field(
        default=None, ge=0, description="Position in the media, in seconds"
    )
    region: dict[str, Any] | None = Field(
        default=None, description="Spatial region on the asset"
    )


class Comment(IDMixin):
    """Feedback entry authored by one participant on one version."""

    review_version_id: UUID
    participant_id: UUID
    content: str = Field(..., min_length=1)
    metadata: CommentMetadata | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("comment content cannot be blank")
        return value


__all__ = ["Comment", "CommentMetadata"]
