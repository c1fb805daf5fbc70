# src/signoff/store/memory.py
"""In-process review store for tests and local runs."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from signoff.core.logs import get_logger
from signoff.models import (
    Approval,
    AssetSnapshot,
    Comment,
    Participant,
    ParticipantHistoryInfo,
    ParticipantStatus,
    Review,
    ReviewHistoryItem,
    ReviewStatus,
    ReviewToken,
    ReviewVersion,
    utcnow,
)

from .base import (
    ApprovalRecorded,
    CreatedReview,
    ReviewStatusSnapshot,
    ReviewStore,
    StatusWrite,
    TokenCheck,
    TokenConsumption,
    changes_aggregate,
)

logger = get_logger(__name__)


class MemoryReviewStore(ReviewStore):
    """Dictionary-backed store with one lock per review.

    Returned models are copies; mutating them never changes stored state.
    """

    def __init__(self) -> None:
        self.reviews: dict[UUID, Review] = {}
        self.versions: dict[UUID, ReviewVersion] = {}
        self.participants: dict[UUID, Participant] = {}
        self.comments: dict[UUID, Comment] = {}
        self.approvals: dict[UUID, Approval] = {}
        self.tokens: dict[str, ReviewToken] = {}
        self.assets: dict[str, AssetSnapshot] = {}
        self._locks: defaultdict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._token_lock = asyncio.Lock()

    def register_asset(self, asset: AssetSnapshot) -> None:
        self.assets[asset.id] = asset.model_copy()

    def _bump(self, review_id: UUID) -> None:
        review = self.reviews[review_id]
        review.revision += 1
        review.updated_at = utcnow()

    async def create_review(
        self,
        review: Review,
        participants: list[Participant],
        tokens: list[ReviewToken],
    ) -> CreatedReview:
        known = {p.id for p in participants}
        if any(p.review_id != review.id for p in participants) or any(
            t.participant_id not in known for t in tokens
        ):
            raise ValueError("participants and tokens must belong to the new review")
        if review.id in self.reviews:
            raise ValueError(f"review {review.id} already exists")

        async with self._locks[review.id]:
            version = ReviewVersion(review_id=review.id, version_number=1)
            self.reviews[review.id] = review.model_copy()
            self.versions[version.id] = version
            for participant in participants:
                self.participants[participant.id] = participant.model_copy()
            for token in tokens:
                self.tokens[token.secret_hash] = token.model_copy()
        return CreatedReview(
            review=review.model_copy(),
            version=version.model_copy(),
            participants=[p.model_copy() for p in participants],
            tokens=[t.model_copy() for t in tokens],
        )

    async def add_version(self, review_id: UUID) -> ReviewVersion:
        if review_id not in self.reviews:
            raise KeyError(review_id)
        async with self._locks[review_id]:
            current = [v.version_number for v in self.versions.values() if v.review_id == review_id]
            version = ReviewVersion(
                review_id=review_id, version_number=max(current, default=0) + 1
            )
            self.versions[version.id] = version
        return version.model_copy()

    async def get_review(self, review_id: UUID) -> Review | None:
        review = self.reviews.get(review_id)
        return review.model_copy() if review else None

    async def get_version(self, version_id: UUID) -> ReviewVersion | None:
        version = self.versions.get(version_id)
        return version.model_copy() if version else None

    async def list_versions(self, review_id: UUID) -> list[ReviewVersion]:
        versions = [v for v in self.versions.values() if v.review_id == review_id]
        return [v.model_copy() for v in sorted(versions, key=lambda v: v.version_number)]

    async def get_participant(self, participant_id: UUID) -> Participant | None:
        participant = self.participants.get(participant_id)
        return participant.model_copy() if participant else None

    async def list_participants(self, review_id: UUID) -> list[Participant]:
        rows = [p for p in self.participants.values() if p.review_id == review_id]
        return [p.model_copy() for p in sorted(rows, key=lambda p: p.added_at)]

    async def list_comments(self, version_id: UUID) -> list[Comment]:
        rows = [c for c in self.comments.values() if c.review_version_id == version_id]
        return [c.model_copy() for c in sorted(rows, key=lambda c: c.created_at)]

    async def list_approvals(self, version_id: UUID) -> list[Approval]:
        rows = [a for a in self.approvals.values() if a.review_version_id == version_id]
        return [a.model_copy() for a in sorted(rows, key=lambda a: a.created_at)]

    async def get_asset_snapshot(self, asset_id: str) -> AssetSnapshot | None:
        asset = self.assets.get(asset_id)
        return asset.model_copy() if asset else None

    async def get_asset_review_history(
        self, asset_id: str, client_id: str
    ) -> list[ReviewHistoryItem]:
        reviews = [
            r
            for r in self.reviews.values()
            if r.asset_id == asset_id and r.client_id == client_id
        ]
        items: list[ReviewHistoryItem] = []
        for review in sorted(reviews, key=lambda r: r.created_at, reverse=True):
            version_ids = {
                v.id for v in self.versions.values() if v.review_id == review.id
            }
            numbers = [
                v.version_number for v in self.versions.values() if v.review_id == review.id
            ]
            participants = await self.list_participants(review.id)
            items.append(
                ReviewHistoryItem(
                    review_id=review.id,
                    title=review.title,
                    status=review.status,
                    created_at=review.created_at,
                    initiated_by=review.initiator_id,
                    latest_version_number=max(numbers, default=0),
                    participants=[
                        ParticipantHistoryInfo(email=p.email, status=p.status)
                        for p in participants
                    ],
                    comments_count=sum(
                        1 for c in self.comments.values() if c.review_version_id in version_ids
                    ),
                )
            )
        return items

    async def find_token(self, secret_hash: str) -> ReviewToken | None:
        token = self.tokens.get(secret_hash)
        return token.model_copy() if token else None

    async def consume_token(self, secret_hash: str, now: datetime) -> TokenConsumption:
        async with self._token_lock:
            token = self.tokens.get(secret_hash)
            if token is None:
                return TokenConsumption(TokenCheck.NOT_FOUND)
            if token.used_at is not None:
                return TokenConsumption(TokenCheck.ALREADY_USED, token.model_copy())
            if token.expires_at <= now:
                return TokenConsumption(TokenCheck.EXPIRED, token.model_copy())
            token.used_at = now
            return TokenConsumption(TokenCheck.CONSUMED, token.model_copy())

    async def advance_participant_status(
        self,
        participant_id: UUID,
        from_statuses: Iterable[ParticipantStatus],
        to_status: ParticipantStatus,
    ) -> bool:
        participant = self.participants.get(participant_id)
        if participant is None:
            return False
        allowed = set(from_statuses)
        async with self._locks[participant.review_id]:
            if participant.status not in allowed:
                return False
            previous, participant.status = participant.status, to_status
            if changes_aggregate(previous, to_status):
                self._bump(participant.review_id)
        return True

    async def add_comment(self, comment: Comment) -> Comment:
        if comment.review_version_id not in self.versions:
            raise KeyError(comment.review_version_id)
        if comment.participant_id not in self.participants:
            raise KeyError(comment.participant_id)
        self.comments[comment.id] = comment.model_copy()
        return comment.model_copy()

    async def record_approval(self, approval: Approval) -> ApprovalRecorded:
        version = self.versions[approval.review_version_id]
        participant = self.participants[approval.participant_id]
        async with self._locks[version.review_id]:
            previous = participant.status
            self.approvals[approval.id] = approval.model_copy()
            participant.status = approval.action.participant_status
            self._bump(version.review_id)
        return ApprovalRecorded(
            approval=approval.model_copy(),
            review_id=version.review_id,
            previous_status=previous,
        )

    async def get_status_snapshot(self, review_id: UUID) -> ReviewStatusSnapshot | None:
        review = self.reviews.get(review_id)
        if review is None:
            return None
        async with self._locks[review_id]:
            return ReviewStatusSnapshot(
                review_id=review_id,
                revision=review.revision,
                status=review.status,
                participant_statuses=[
                    p.status for p in self.participants.values() if p.review_id == review_id
                ],
            )

    async def compare_and_set_review_status(
        self, review_id: UUID, expected_revision: int, status: ReviewStatus
    ) -> StatusWrite:
        review = self.reviews.get(review_id)
        if review is None:
            raise KeyError(review_id)
        async with self._locks[review_id]:
            if review.revision != expected_revision:
                logger.debug(
                    "CAS conflict on review %s: expected %s, found %s",
                    review_id,
                    expected_revision,
                    review.revision,
                )
                return StatusWrite.CONFLICT
            if review.status == status:
                return StatusWrite.UNCHANGED
            review.status = status
            self._bump(review_id)
        return StatusWrite.APPLIED


__all__ = ["MemoryReviewStore"]
