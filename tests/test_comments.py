# ruff: noqa: S101
"""Tests for reviewer comments."""

from __future__ import annotations

from uuid import uuid4

import pytest

from signoff.errors import ErrorKind
from signoff.models import ApprovalAction, ParticipantStatus, ReviewEventType


async def test_blank_comment_rejected_and_not_persisted(
    store, orchestrator, start_review
) -> None:
    review = await start_review()
    participant = review.participant_tokens[0].participant_id

    for content in ("", "   \n"):
        result = await orchestrator.add_comment(
            content, None, review.review_version_id, participant
        )
        assert not result.success
        assert result.error_kind is ErrorKind.VALIDATION

    assert store.comments == {}
    assert store.participants[participant].status is ParticipantStatus.INVITED


async def test_comment_advances_status_and_emits_event(
    store, orchestrator, publisher, start_review
) -> None:
    review = await start_review()
    participant = review.participant_tokens[1].participant_id

    result = await orchestrator.add_comment(
        "Logo is too small",
        {"ts": 12.5, "region": {"x": 10, "y": 20, "w": 50, "h": 40}},
        review.review_version_id,
        participant,
    )
    await orchestrator.notifier.drain()

    created = result.unwrap()
    stored = store.comments[created.comment_id]
    assert stored.content == "Logo is too small"
    assert stored.metadata.ts == 12.5
    assert store.participants[participant].status is ParticipantStatus.COMMENTED
    [event] = publisher.of_type(ReviewEventType.COMMENTED)
    assert event.participant_id == participant
    assert event.payload["comment_id"] == str(created.comment_id)


@pytest.mark.parametrize("action", list(ApprovalAction))
async def test_comment_never_downgrades_verdict(
    store, orchestrator, start_review, action: ApprovalAction
) -> None:
    review = await start_review()
    participant = review.participant_tokens[0].participant_id
    await orchestrator.record_approval(review.review_version_id, participant, action)

    result = await orchestrator.add_comment(
        "one more thing", None, review.review_version_id, participant
    )

    assert result.success
    assert store.participants[participant].status is action.participant_status


async def test_comment_from_other_review_is_not_found(orchestrator, start_review) -> None:
    first = await start_review()
    second = await start_review(asset_id="a2")

    result = await orchestrator.add_comment(
        "hello", None, first.review_version_id, second.participant_tokens[0].participant_id
    )
    assert result.error_kind is ErrorKind.NOT_FOUND

    result = await orchestrator.add_comment(
        "hello", None, uuid4(), first.participant_tokens[0].participant_id
    )
    assert result.error_kind is ErrorKind.NOT_FOUND


async def test_invalid_metadata_is_a_validation_error(orchestrator, start_review) -> None:
    review = await start_review()
    result = await orchestrator.add_comment(
        "fine", {"ts": -3}, review.review_version_id, review.participant_tokens[0].participant_id
    )
    assert result.error_kind is ErrorKind.VALIDATION
