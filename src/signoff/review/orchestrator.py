# src/signoff/review/orchestrator.py
"""Public operations of the review workflow.

:class:`ReviewOrchestrator` composes the store, the token authenticator,
the comment service and the approval aggregator.  Every public method
returns a :class:`~signoff.models.ServiceResult`; failures never escape as
exceptions.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import timedelta
from typing import Any
from uuid import UUID

from signoff.config import config
from signoff.core.logs import EventType, Priority, get_event_logger
from signoff.errors import NotFoundError, ValidationError
from signoff.models import (
    ApprovalAction,
    CommentCreated,
    CommentMetadata,
    InitiateReviewResult,
    Participant,
    ParticipantStatus,
    ParticipantToken,
    PortalComment,
    Review,
    ReviewEvent,
    ReviewEventType,
    ReviewHistoryItem,
    ReviewPortalData,
    ReviewStatus,
    ReviewVersion,
    TokenContext,
)
from signoff.store import ReviewStore

from .aggregator import ApprovalAggregator
from .comments import CommentService, load_membership
from .notifications import NotificationDispatcher, NotificationPublisher
from .operations import service_operation
from .status import VIEWABLE_FROM
from .tokens import TokenAuthenticator

event_logger = get_event_logger()


def normalize_emails(emails: Sequence[str] | None) -> list[str]:
    """Trim, lower-case and de-duplicate ``emails`` keeping first-seen order.

    Raises :class:`ValidationError` for an empty list or a blank entry.
    """
    if not emails:
        raise ValidationError(
            "Missing required fields: assetId and at least one reviewerEmail are required."
        )
    seen: dict[str, None] = {}
    for raw in emails:
        email = (raw or "").strip().lower()
        if not email:
            raise ValidationError("Reviewer emails cannot be blank")
        if "@" not in email:
            raise ValidationError(f"Invalid reviewer email: {raw!r}")
        seen.setdefault(email, None)
    return list(seen)


class ReviewOrchestrator:
    """Entry point for internal users and token-bearing reviewers."""

    def __init__(
        self,
        store: ReviewStore,
        publisher: NotificationPublisher | None = None,
        *,
        authenticator: TokenAuthenticator | None = None,
        notifier: NotificationDispatcher | None = None,
        token_ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier or NotificationDispatcher(publisher)
        self.tokens = authenticator or TokenAuthenticator(store)
        self.comments = CommentService(store, self.notifier)
        self.aggregator = ApprovalAggregator(store, self.notifier)
        self.token_ttl = token_ttl or timedelta(days=config.review.token_ttl_days)

    # --- internal users ----------------------------------------------

    @service_operation("initiate_review")
    async def initiate_review(
        self,
        asset_id: str,
        client_id: str,
        reviewer_emails: Sequence[str],
        initiated_by_user_id: str | None = None,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> InitiateReviewResult:
        start_time = time.time()
        asset_id = (asset_id or "").strip()
        client_id = (client_id or "").strip()
        if not asset_id:
            raise ValidationError(
                "Missing required fields: assetId and at least one reviewerEmail are required."
            )
        if not client_id:
            raise ValidationError("Client context is required")
        emails = normalize_emails(reviewer_emails)

        review = Review(
            asset_id=asset_id,
            client_id=client_id,
            title=(title or "").strip() or f"Review for Asset {asset_id}",
            description=(description or "").strip() or None,
            initiator_id=initiated_by_user_id,
        )
        participants = [Participant(review_id=review.id, email=email) for email in emails]
        issued = [self.tokens.issue(p.id, self.token_ttl) for p in participants]

        created = await self.store.create_review(
            review, participants, [i.token for i in issued]
        )

        event_logger.info(
            f"Review initiated for asset {asset_id} with {len(participants)} reviewers",
            event_type=EventType.REVIEW_INITIATED,
            priority=Priority.HIGH,
            review_id=review.id,
            client_id=client_id,
            duration=time.time() - start_time,
        )
        for participant, token in zip(participants, issued, strict=True):
            self.notifier.dispatch(
                ReviewEvent(
                    type=ReviewEventType.INVITED,
                    review_id=review.id,
                    participant_id=participant.id,
                    recipient_email=participant.email,
                    payload={
                        "title": review.title,
                        "expires_at": token.token.expires_at.isoformat(),
                    },
                )
            )

        return InitiateReviewResult(
            review_id=created.review.id,
            review_version_id=created.version.id,
            participant_tokens=[
                ParticipantToken(participant_id=p.id, email=p.email, token=i.secret)
                for p, i in zip(participants, issued, strict=True)
            ],
        )

    @service_operation("add_review_version")
    async def add_review_version(self, review_id: UUID, client_id: str) -> ReviewVersion:
        review = await self.store.get_review(review_id)
        if review is None or review.client_id != client_id:
            raise NotFoundError("Review not found")
        version = await self.store.add_version(review_id)

        event_logger.info(
            f"Review version {version.version_number} added",
            event_type=EventType.REVIEW_VERSION_ADDED,
            review_id=review_id,
            version_number=version.version_number,
        )
        for participant in await self.store.list_participants(review_id):
            self.notifier.dispatch(
                ReviewEvent(
                    type=ReviewEventType.VERSION_ADDED,
                    review_id=review_id,
                    participant_id=participant.id,
                    recipient_email=participant.email,
                    payload={
                        "review_version_id": str(version.id),
                        "version_number": version.version_number,
                    },
                )
            )
        return version

    @service_operation("get_asset_review_history")
    async def get_asset_review_history(
        self, asset_id: str, client_id: str
    ) -> list[ReviewHistoryItem]:
        if not asset_id or not asset_id.strip():
            raise ValidationError("Asset id is required")
        if not client_id or not client_id.strip():
            raise ValidationError("Client context is required")
        return await self.store.get_asset_review_history(asset_id.strip(), client_id.strip())

    # --- token-bearing reviewers --------------------------------------

    @service_operation("validate_token")
    async def validate_token(self, token: str, *, consume: bool = False) -> TokenContext:
        return await self.tokens.validate(token, consume=consume)

    @service_operation("get_review_data")
    async def get_review_data(
        self, review_version_id: UUID, participant_id: UUID
    ) -> ReviewPortalData:
        version, participant = await load_membership(
            self.store, review_version_id, participant_id
        )
        review = await self.store.get_review(version.review_id)
        if review is None:
            raise NotFoundError("Review not found")

        asset = await self.store.get_asset_snapshot(review.asset_id)
        if asset is None:
            event_logger.warning(
                f"Asset {review.asset_id} not found for review",
                review_id=review.id,
                asset_id=review.asset_id,
            )

        if await self.store.advance_participant_status(
            participant.id, VIEWABLE_FROM, ParticipantStatus.VIEWED
        ):
            participant.status = ParticipantStatus.VIEWED

        authors: dict[UUID, Participant] = {
            p.id: p for p in await self.store.list_participants(review.id)
        }
        comments = [
            PortalComment(
                id=c.id,
                review_id=review.id,
                participant_id=c.participant_id,
                author_name=_author_name(authors.get(c.participant_id)),
                content=c.content,
                metadata=(
                    c.metadata.model_dump(mode="json", exclude_none=True)
                    if c.metadata
                    else None
                ),
                created_at=c.created_at,
            )
            for c in await self.store.list_comments(version.id)
        ]
        return ReviewPortalData(
            review_id=review.id,
            review_version_id=version.id,
            version_number=version.version_number,
            title=review.title,
            description=review.description,
            status=review.status,
            participant_id=participant.id,
            participant_status=participant.status,
            asset_snapshot=asset,
            comments=comments,
        )

    @service_operation("add_comment")
    async def add_comment(
        self,
        content: str,
        metadata: CommentMetadata | dict[str, Any] | None,
        review_version_id: UUID,
        participant_id: UUID,
    ) -> CommentCreated:
        return await self.comments.add_comment(
            content, metadata, review_version_id, participant_id
        )

    @service_operation("record_approval")
    async def record_approval(
        self,
        review_version_id: UUID,
        participant_id: UUID,
        action: ApprovalAction | str,
        comment: str | None = None,
    ) -> ReviewStatus:
        return await self.aggregator.record_approval(
            review_version_id, participant_id, action, comment
        )


def _author_name(participant: Participant | None) -> str | None:
    if participant is None:
        return None
    return participant.name or participant.email


__all__ = ["ReviewOrchestrator", "normalize_emails"]
