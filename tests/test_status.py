# ruff: noqa: S101
"""Tests for participant status transitions."""

from __future__ import annotations

import pytest

from signoff.models import ParticipantStatus
from signoff.review.status import (
    COMMENTABLE_FROM,
    VIEWABLE_FROM,
    can_transition,
    sources_for,
)

P = ParticipantStatus


def test_view_only_moves_invited() -> None:
    assert VIEWABLE_FROM == {P.INVITED}


def test_comment_moves_only_early_statuses() -> None:
    assert COMMENTABLE_FROM == {P.INVITED, P.VIEWED}


@pytest.mark.parametrize("verdict", [P.APPROVED, P.CHANGES_REQUESTED, P.REJECTED])
def test_verdict_overwrites_anything(verdict: ParticipantStatus) -> None:
    assert sources_for(verdict) == set(P)


def test_never_backwards() -> None:
    for status in P:
        assert not can_transition(status, P.INVITED)
    assert not can_transition(P.COMMENTED, P.VIEWED)
    assert not can_transition(P.APPROVED, P.COMMENTED)
    assert can_transition(P.INVITED, P.COMMENTED)
