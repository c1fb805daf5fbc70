# src/signoff/models/token.py
"""Data model for reviewer access tokens."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from .mixins import IDMixin, utcnow


class ReviewToken(IDMixin):
    """Time-boxed bearer credential bound to one participant.

    Only the SHA-256 digest of the secret is kept; the raw value is handed
    out once when the review is initiated.
    """

    participant_id: UUID
    secret_hash: str = Field(..., min_length=64, max_length=64)
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)


__all__ = ["ReviewToken"]
