# src/signoff/models/mixins.py
"""Common reusable mixin models."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import Field

from .base_model import SignoffBaseModel


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


class IDMixin(SignoffBaseModel):
    """Mixin that provides a unique identifier."""

    id: UUID = Field(default_factory=uuid4)


class TimestampsMixin(SignoffBaseModel):
    """Mixin that adds creation and update timestamps."""

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = Field(default=None)


__all__ = ["IDMixin", "TimestampsMixin", "utcnow"]
