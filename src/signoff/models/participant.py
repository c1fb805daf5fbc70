# src/signoff/models/participant.py
"""Data model for invited reviewers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from .mixins import IDMixin, utcnow


class ParticipantStatus(str, Enum):
    """Per-reviewer progress, in increasing order of commitment."""

    INVITED = "invited"
    VIEWED = "viewed"
    COMMENTED = "commented"
    CHANGES_REQUESTED = "changes_requested"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_verdict(self) -> bool:
        return self in _VERDICTS


_VERDICTS = frozenset(
    {ParticipantStatus.APPROVED, ParticipantStatus.CHANGES_REQUESTED, ParticipantStatus.REJECTED}
)


class ApprovalAction(str, Enum):
    """Terminal verdict a participant records against a version."""

    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    REJECTED = "rejected"

    @property
    def participant_status(self) -> ParticipantStatus:
        return ParticipantStatus(self.value)


class Participant(IDMixin):
    """One invited reviewer, internal user or external email."""

    review_id: UUID
    user_id: str | None = None
    email: str = Field(..., min_length=3)
    name: str | None = None
    status: ParticipantStatus = ParticipantStatus.INVITED
    added_at: datetime = Field(default_factory=utcnow)


__all__ = ["ApprovalAction", "Participant", "ParticipantStatus"]
