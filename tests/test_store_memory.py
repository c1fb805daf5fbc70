# ruff: noqa: S101
"""Tests for the in-process review store."""

from __future__ import annotations

from datetime import timedelta

from signoff.models import (
    Participant,
    ParticipantStatus,
    Review,
    ReviewStatus,
    ReviewToken,
    utcnow,
)
from signoff.store import MemoryReviewStore, StatusWrite, TokenCheck, changes_aggregate


async def _seed(store: MemoryReviewStore) -> tuple[Review, Participant]:
    review = Review(asset_id="a1", client_id="c1", title="t")
    participant = Participant(review_id=review.id, email="x@example.com")
    await store.create_review(review, [participant], [])
    return review, participant


async def test_only_verdict_moves_bump_revision() -> None:
    store = MemoryReviewStore()
    review, participant = await _seed(store)

    changed = await store.advance_participant_status(
        participant.id, {ParticipantStatus.INVITED}, ParticipantStatus.VIEWED
    )
    unchanged = await store.advance_participant_status(
        participant.id, {ParticipantStatus.INVITED}, ParticipantStatus.VIEWED
    )
    assert changed and not unchanged
    assert store.participants[participant.id].status is ParticipantStatus.VIEWED
    assert store.reviews[review.id].revision == 0

    await store.advance_participant_status(
        participant.id, {ParticipantStatus.VIEWED}, ParticipantStatus.APPROVED
    )
    assert store.reviews[review.id].revision == 1


def test_changes_aggregate() -> None:
    assert not changes_aggregate(ParticipantStatus.INVITED, ParticipantStatus.COMMENTED)
    assert not changes_aggregate(ParticipantStatus.REJECTED, ParticipantStatus.REJECTED)
    assert changes_aggregate(ParticipantStatus.VIEWED, ParticipantStatus.REJECTED)
    assert changes_aggregate(ParticipantStatus.APPROVED, ParticipantStatus.REJECTED)


async def test_compare_and_set() -> None:
    store = MemoryReviewStore()
    review, _ = await _seed(store)

    assert (
        await store.compare_and_set_review_status(review.id, 5, ReviewStatus.APPROVED)
        is StatusWrite.CONFLICT
    )
    assert (
        await store.compare_and_set_review_status(review.id, 0, ReviewStatus.PENDING)
        is StatusWrite.UNCHANGED
    )
    assert (
        await store.compare_and_set_review_status(review.id, 0, ReviewStatus.IN_PROGRESS)
        is StatusWrite.APPLIED
    )
    snapshot = await store.get_status_snapshot(review.id)
    assert snapshot.revision == 1
    assert snapshot.status is ReviewStatus.IN_PROGRESS


async def test_consume_token_outcomes() -> None:
    store = MemoryReviewStore()
    review, participant = await _seed(store)
    now = utcnow()
    live = ReviewToken(
        participant_id=participant.id, secret_hash="a" * 64, expires_at=now + timedelta(days=1)
    )
    stale = ReviewToken(
        participant_id=participant.id, secret_hash="b" * 64, expires_at=now - timedelta(days=1)
    )
    store.tokens[live.secret_hash] = live
    store.tokens[stale.secret_hash] = stale

    assert (await store.consume_token("a" * 64, now)).outcome is TokenCheck.CONSUMED
    assert (await store.consume_token("a" * 64, now)).outcome is TokenCheck.ALREADY_USED
    assert (await store.consume_token("b" * 64, now)).outcome is TokenCheck.EXPIRED
    assert (await store.consume_token("c" * 64, now)).outcome is TokenCheck.NOT_FOUND


async def test_returned_models_are_copies() -> None:
    store = MemoryReviewStore()
    review, _ = await _seed(store)

    fetched = await store.get_review(review.id)
    fetched.status = ReviewStatus.REJECTED

    assert store.reviews[review.id].status is ReviewStatus.PENDING
