# src/signoff/models/approval.py
"""Data model for approval history."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .mixins import IDMixin, utcnow
from .participant import ApprovalAction


class Approval(IDMixin):
    """Record of a participant's verdict on a review version."""

    review_version_id: UUID
    participant_id: UUID
    action: ApprovalAction
    comment: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["Approval"]
