# src/signoff/models/events.py
"""Domain events handed to notification publishers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field

from .base_model import SignoffBaseModel
from .mixins import IDMixin, utcnow


class ReviewEventType(str, Enum):
    INVITED = "invited"
    COMMENTED = "commented"
    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    REJECTED = "rejected"
    REVIEW_STATUS_CHANGED = "review_status_changed"
    VERSION_ADDED = "version_added"


class ReviewEvent(IDMixin):
    """Something a reviewer or the initiator may want to hear about."""

    type: ReviewEventType
    review_id: UUID
    participant_id: UUID | None = None
    recipient_email: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)

    def to_message(self) -> dict[str, Any]:
        """Serialize for websocket or queue delivery."""
        return {"type": "review_event", **self.model_dump(mode="json")}


__all__ = ["ReviewEvent", "ReviewEventType"]
