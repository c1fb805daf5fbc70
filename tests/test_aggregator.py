# ruff: noqa: S101
"""Tests for review status aggregation."""

from __future__ import annotations

from uuid import UUID

import pytest

from signoff.errors import ErrorKind, ValidationError
from signoff.models import (
    Approval,
    ApprovalAction,
    ParticipantStatus,
    ReviewEventType,
    ReviewStatus,
)
from signoff.review import ReviewOrchestrator, parse_action, recompute
from signoff.review.status import VIEWABLE_FROM
from signoff.store import MemoryReviewStore, StatusWrite

P = ParticipantStatus


@pytest.mark.parametrize(
    ("statuses", "expected"),
    [
        ([P.APPROVED, P.APPROVED, P.APPROVED], ReviewStatus.APPROVED),
        ([P.APPROVED, P.REJECTED, P.CHANGES_REQUESTED], ReviewStatus.REJECTED),
        ([P.APPROVED, P.APPROVED, P.CHANGES_REQUESTED], ReviewStatus.CHANGES_REQUESTED),
        ([P.APPROVED, P.VIEWED], ReviewStatus.IN_PROGRESS),
        ([P.INVITED], ReviewStatus.IN_PROGRESS),
        ([], ReviewStatus.IN_PROGRESS),
    ],
)
def test_recompute(statuses: list[ParticipantStatus], expected: ReviewStatus) -> None:
    assert recompute(statuses) is expected


def test_recompute_is_pure() -> None:
    statuses = [P.APPROVED, P.COMMENTED]
    assert recompute(statuses) is recompute(list(statuses))
    assert statuses == [P.APPROVED, P.COMMENTED]
    assert recompute(iter([P.APPROVED])) is ReviewStatus.APPROVED


def test_parse_action() -> None:
    assert parse_action("APPROVED") is ApprovalAction.APPROVED
    assert parse_action(" changes_requested ") is ApprovalAction.CHANGES_REQUESTED
    with pytest.raises(ValidationError):
        parse_action("maybe")


async def _record_all(orchestrator, review, actions) -> None:
    for entry, action in zip(review.participant_tokens, actions, strict=True):
        result = await orchestrator.record_approval(
            review.review_version_id, entry.participant_id, action
        )
        assert result.success, result.error


@pytest.mark.parametrize(
    ("actions", "expected"),
    [
        (("approved", "approved", "changes_requested"), ReviewStatus.CHANGES_REQUESTED),
        (("approved", "rejected", "changes_requested"), ReviewStatus.REJECTED),
        (("approved", "approved", "approved"), ReviewStatus.APPROVED),
    ],
)
async def test_three_reviewer_outcomes(
    store, orchestrator, start_review, actions, expected
) -> None:
    review = await start_review()
    await _record_all(orchestrator, review, actions)
    assert store.reviews[review.review_id].status is expected


async def test_partial_approval_is_in_progress(store, orchestrator, start_review) -> None:
    review = await start_review()
    entry = review.participant_tokens[0]

    result = await orchestrator.record_approval(
        review.review_version_id, entry.participant_id, "approved", "Looks good"
    )

    assert result.unwrap() is ReviewStatus.IN_PROGRESS
    [approval] = store.approvals.values()
    assert approval.comment == "Looks good"
    assert store.participants[entry.participant_id].status is P.APPROVED


async def test_later_verdict_overwrites_earlier(store, orchestrator, start_review) -> None:
    review = await start_review(emails=["solo@example.com"])
    pid = review.participant_tokens[0].participant_id
    version = review.review_version_id

    await orchestrator.record_approval(version, pid, "rejected")
    assert store.reviews[review.review_id].status is ReviewStatus.REJECTED

    await orchestrator.record_approval(version, pid, "approved")
    assert store.reviews[review.review_id].status is ReviewStatus.APPROVED
    assert len(store.approvals) == 2


async def test_invalid_action_has_no_side_effects(store, orchestrator, start_review) -> None:
    review = await start_review()
    result = await orchestrator.record_approval(
        review.review_version_id, review.participant_tokens[0].participant_id, "maybe"
    )
    assert result.error_kind is ErrorKind.VALIDATION
    assert store.approvals == {}


async def test_verdict_and_status_events(orchestrator, publisher, start_review) -> None:
    review = await start_review(emails=["solo@example.com"])
    pid = review.participant_tokens[0].participant_id

    await orchestrator.record_approval(review.review_version_id, pid, "changes_requested")
    await orchestrator.notifier.drain()

    [verdict] = publisher.of_type(ReviewEventType.CHANGES_REQUESTED)
    assert verdict.participant_id == pid
    [changed] = publisher.of_type(ReviewEventType.REVIEW_STATUS_CHANGED)
    assert changed.payload == {"from": "pending", "to": "changes_requested"}

    # Same verdict again leaves the aggregate alone
    await orchestrator.record_approval(review.review_version_id, pid, "changes_requested")
    await orchestrator.notifier.drain()
    assert len(publisher.of_type(ReviewEventType.REVIEW_STATUS_CHANGED)) == 1


class InterleavingStore(MemoryReviewStore):
    """Store that lets another verdict land right after a status snapshot."""

    def __init__(self) -> None:
        super().__init__()
        self.pending: list[Approval] = []
        self.snapshots = 0

    async def get_status_snapshot(self, review_id):
        snapshot = await super().get_status_snapshot(review_id)
        self.snapshots += 1
        while self.pending:
            await super().record_approval(self.pending.pop())
        return snapshot


async def test_concurrent_verdict_is_not_lost(publisher) -> None:
    store = InterleavingStore()
    orchestrator = ReviewOrchestrator(store, publisher)
    orchestrator.aggregator.retry_wait = 0
    review = (
        await orchestrator.initiate_review("a1", "c1", ["x@example.com", "y@example.com"])
    ).unwrap()
    first, second = review.participant_tokens

    store.pending.append(
        Approval(
            review_version_id=review.review_version_id,
            participant_id=second.participant_id,
            action=ApprovalAction.APPROVED,
        )
    )
    result = await orchestrator.record_approval(
        review.review_version_id, first.participant_id, "approved"
    )

    # The stale snapshot saw one approval; the retry sees both
    assert result.unwrap() is ReviewStatus.APPROVED
    assert store.snapshots == 2
    assert store.reviews[review.review_id].status is ReviewStatus.APPROVED


class ViewingStore(MemoryReviewStore):
    """Store where other reviewers open their links right after each snapshot."""

    def __init__(self) -> None:
        super().__init__()
        self.viewers: list[UUID] = []

    async def get_status_snapshot(self, review_id):
        snapshot = await super().get_status_snapshot(review_id)
        while self.viewers:
            await self.advance_participant_status(
                self.viewers.pop(0), VIEWABLE_FROM, ParticipantStatus.VIEWED
            )
        return snapshot


async def test_views_during_verdict_do_not_block_status(publisher) -> None:
    store = ViewingStore()
    orchestrator = ReviewOrchestrator(store, publisher)
    orchestrator.aggregator.retry_wait = 0
    review = (
        await orchestrator.initiate_review(
            "a1", "c1", ["x@example.com", "y@example.com", "z@example.com"]
        )
    ).unwrap()
    rejecter, *others = review.participant_tokens
    store.viewers.extend(o.participant_id for o in others)

    result = await orchestrator.record_approval(
        review.review_version_id, rejecter.participant_id, "rejected"
    )

    assert result.unwrap() is ReviewStatus.REJECTED
    assert store.reviews[review.review_id].status is ReviewStatus.REJECTED
    assert [store.participants[o.participant_id].status for o in others] == [
        P.VIEWED,
        P.VIEWED,
    ]


class AlwaysConflictingStore(MemoryReviewStore):
    def __init__(self) -> None:
        super().__init__()
        self.cas_calls = 0

    async def compare_and_set_review_status(self, review_id, expected_revision, status):
        self.cas_calls += 1
        return StatusWrite.CONFLICT


async def test_conflict_surfaces_after_one_retry(publisher) -> None:
    store = AlwaysConflictingStore()
    orchestrator = ReviewOrchestrator(store, publisher)
    orchestrator.aggregator.retry_wait = 0
    review = (await orchestrator.initiate_review("a1", "c1", ["x@example.com"])).unwrap()

    result = await orchestrator.record_approval(
        review.review_version_id, review.participant_tokens[0].participant_id, "approved"
    )

    assert result.error_kind is ErrorKind.CONFLICT
    assert store.cas_calls == 2
    assert store.reviews[review.review_id].status is ReviewStatus.PENDING
