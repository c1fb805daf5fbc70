# src/signoff/review/comments.py
"""Reviewer comments on a review version."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from signoff.core.logs import EventType, get_event_logger, log_calls
from signoff.errors import NotFoundError, ValidationError
from signoff.models import (
    Comment,
    CommentCreated,
    CommentMetadata,
    Participant,
    ParticipantStatus,
    ReviewEvent,
    ReviewEventType,
    ReviewVersion,
)
from signoff.store import ReviewStore

from .notifications import NotificationDispatcher
from .status import COMMENTABLE_FROM

event_logger = get_event_logger()


async def load_membership(
    store: ReviewStore, review_version_id: UUID, participant_id: UUID
) -> tuple[ReviewVersion, Participant]:
    """Return the version and participant, or raise if they do not match."""
    version = await store.get_version(review_version_id)
    if version is None:
        raise NotFoundError("Review version not found")
    participant = await store.get_participant(participant_id)
    if participant is None or participant.review_id != version.review_id:
        raise NotFoundError("Participant is not part of this review")
    return version, participant


class CommentService:
    """Record feedback and move the author to ``commented``."""

    def __init__(self, store: ReviewStore, notifier: NotificationDispatcher) -> None:
        self.store = store
        self.notifier = notifier

    @log_calls
    async def add_comment(
        self,
        content: str,
        metadata: CommentMetadata | dict[str, Any] | None,
        review_version_id: UUID,
        participant_id: UUID,
    ) -> CommentCreated:
        if content is None or not str(content).strip():
            raise ValidationError("Comment content is required")
        try:
            meta = (
                CommentMetadata.model_validate(metadata) if metadata is not None else None
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid comment metadata: {exc.errors()[0]['msg']}") from exc

        version, participant = await load_membership(
            self.store, review_version_id, participant_id
        )
        comment = await self.store.add_comment(
            Comment(
                review_version_id=version.id,
                participant_id=participant.id,
                content=content,
                metadata=meta,
            )
        )
        advanced = await self.store.advance_participant_status(
            participant.id, COMMENTABLE_FROM, ParticipantStatus.COMMENTED
        )

        event_logger.info(
            "Comment added",
            event_type=EventType.COMMENT_ADDED,
            review_id=version.review_id,
            participant_id=participant.id,
            comment_id=str(comment.id),
            version_number=version.version_number,
            status_advanced=advanced,
        )
        self.notifier.dispatch(
            ReviewEvent(
                type=ReviewEventType.COMMENTED,
                review_id=version.review_id,
                participant_id=participant.id,
                payload={
                    "comment_id": str(comment.id),
                    "review_version_id": str(version.id),
                    "reviewer_email": participant.email,
                },
            )
        )
        return CommentCreated(comment_id=comment.id)


__all__ = ["CommentService", "load_membership"]
