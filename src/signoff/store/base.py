# src/signoff/store/base.py
"""Persistence contract for the review workflow.

Services only talk to storage through :class:`ReviewStore`.  Operations that
must be atomic (review creation, token consumption, conditional status
changes, compare-and-swap of the aggregate status) are single methods here so
each backend can implement them as one transaction.
"""

from __future__ import annotations

import abc
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from signoff.models import (
    Approval,
    AssetSnapshot,
    Comment,
    Participant,
    ParticipantStatus,
    Review,
    ReviewHistoryItem,
    ReviewStatus,
    ReviewToken,
    ReviewVersion,
)


def changes_aggregate(previous: ParticipantStatus, current: ParticipantStatus) -> bool:
    """Return ``True`` if moving ``previous -> current`` can change the review status.

    Only verdicts count towards the aggregate; invited, viewed and commented
    are interchangeable.
    """
    return previous != current and (previous.is_verdict or current.is_verdict)


class TokenCheck(Enum):
    """Outcome of an atomic token consumption."""

    CONSUMED = "consumed"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"


class StatusWrite(Enum):
    """Outcome of a compare-and-swap on the review status."""

    APPLIED = "applied"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class CreatedReview:
    review: Review
    version: ReviewVersion
    participants: list[Participant]
    tokens: list[ReviewToken]


@dataclass(frozen=True)
class ApprovalRecorded:
    approval: Approval
    review_id: UUID
    previous_status: ParticipantStatus


@dataclass(frozen=True)
class TokenConsumption:
    outcome: TokenCheck
    token: ReviewToken | None = None


@dataclass(frozen=True)
class ReviewStatusSnapshot:
    """Participant statuses as of one review revision."""

    review_id: UUID
    revision: int
    status: ReviewStatus
    participant_statuses: list[ParticipantStatus] = field(default_factory=list)


class ReviewStore(abc.ABC):
    """Abstract store over reviews, versions, participants and tokens."""

    # --- creation -----------------------------------------------------

    @abc.abstractmethod
    async def create_review(
        self,
        review: Review,
        participants: list[Participant],
        tokens: list[ReviewToken],
    ) -> CreatedReview:
        """Persist ``review``, version 1, participants and tokens atomically."""

    @abc.abstractmethod
    async def add_version(self, review_id: UUID) -> ReviewVersion:
        """Allocate the next version number for ``review_id``."""

    # --- reads --------------------------------------------------------

    @abc.abstractmethod
    async def get_review(self, review_id: UUID) -> Review | None: ...

    @abc.abstractmethod
    async def get_version(self, version_id: UUID) -> ReviewVersion | None: ...

    @abc.abstractmethod
    async def list_versions(self, review_id: UUID) -> list[ReviewVersion]:
        """Return versions ordered by ``version_number``."""

    async def get_latest_version(self, review_id: UUID) -> ReviewVersion | None:
        versions = await self.list_versions(review_id)
        return versions[-1] if versions else None

    @abc.abstractmethod
    async def get_participant(self, participant_id: UUID) -> Participant | None: ...

    @abc.abstractmethod
    async def list_participants(self, review_id: UUID) -> list[Participant]: ...

    @abc.abstractmethod
    async def list_comments(self, version_id: UUID) -> list[Comment]:
        """Return comments on ``version_id`` oldest first."""

    @abc.abstractmethod
    async def list_approvals(self, version_id: UUID) -> list[Approval]: ...

    @abc.abstractmethod
    async def get_asset_snapshot(self, asset_id: str) -> AssetSnapshot | None: ...

    @abc.abstractmethod
    async def get_asset_review_history(
        self, asset_id: str, client_id: str
    ) -> list[ReviewHistoryItem]:
        """Return one summary per review on the asset, newest first."""

    # --- tokens -------------------------------------------------------

    @abc.abstractmethod
    async def find_token(self, secret_hash: str) -> ReviewToken | None: ...

    @abc.abstractmethod
    async def consume_token(self, secret_hash: str, now: datetime) -> TokenConsumption:
        """Mark the token used if it is unused and unexpired, in one step."""

    # --- participant and review writes -------------------------------

    @abc.abstractmethod
    async def advance_participant_status(
        self,
        participant_id: UUID,
        from_statuses: Iterable[ParticipantStatus],
        to_status: ParticipantStatus,
    ) -> bool:
        """Set ``to_status`` only if the current status is in ``from_statuses``.

        Returns ``True`` when the row changed.  The owning review's revision
        is bumped only when the move passes :func:`changes_aggregate`.
        """

    @abc.abstractmethod
    async def add_comment(self, comment: Comment) -> Comment: ...

    @abc.abstractmethod
    async def record_approval(self, approval: Approval) -> ApprovalRecorded:
        """Append ``approval`` and overwrite the participant status with it.

        Bumps the owning review's revision.
        """

    @abc.abstractmethod
    async def get_status_snapshot(self, review_id: UUID) -> ReviewStatusSnapshot | None: ...

    @abc.abstractmethod
    async def compare_and_set_review_status(
        self, review_id: UUID, expected_revision: int, status: ReviewStatus
    ) -> StatusWrite:
        """Write ``status`` only if the review is still at ``expected_revision``."""


__all__ = [
    "ReviewStore",
    "changes_aggregate",
    "CreatedReview",
    "ApprovalRecorded",
    "TokenConsumption",
    "TokenCheck",
    "ReviewStatusSnapshot",
    "StatusWrite",
]
