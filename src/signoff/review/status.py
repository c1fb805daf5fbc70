# src/signoff/review/status.py
"""Participant status transitions.

Statuses only move forward: ``invited -> viewed -> commented -> verdict``.
A recorded verdict overwrites whatever came before, but reading or
commenting never pulls a participant back from a later stage.
"""

from __future__ import annotations

from signoff.models import ParticipantStatus

VERDICT_STATUSES: frozenset[ParticipantStatus] = frozenset(
    s for s in ParticipantStatus if s.is_verdict
)

_RANK: dict[ParticipantStatus, int] = {
    ParticipantStatus.INVITED: 0,
    ParticipantStatus.VIEWED: 1,
    ParticipantStatus.COMMENTED: 2,
    ParticipantStatus.CHANGES_REQUESTED: 3,
    ParticipantStatus.APPROVED: 3,
    ParticipantStatus.REJECTED: 3,
}


def can_transition(current: ParticipantStatus, target: ParticipantStatus) -> bool:
    """Return ``True`` if ``current -> target`` is an allowed move."""
    if target in VERDICT_STATUSES:
        return True
    if current == target:
        return False
    return _RANK[target] > _RANK[current]


def sources_for(target: ParticipantStatus) -> frozenset[ParticipantStatus]:
    """Statuses a participant may be in for a move to ``target``."""
    return frozenset(s for s in ParticipantStatus if can_transition(s, target))


# Used as the guard of conditional status updates
VIEWABLE_FROM = sources_for(ParticipantStatus.VIEWED)
COMMENTABLE_FROM = sources_for(ParticipantStatus.COMMENTED)


__all__ = [
    "VERDICT_STATUSES",
    "VIEWABLE_FROM",
    "COMMENTABLE_FROM",
    "can_transition",
    "sources_for",
]
