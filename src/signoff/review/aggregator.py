# src/signoff/review/aggregator.py
"""Turn participant verdicts into the authoritative review status.

The review status is derived state.  After each verdict the aggregator
takes a snapshot of every participant status together with the review
revision, computes the aggregate with :func:`recompute`, and writes it back
only if the revision has not moved.  Any verdict written in between bumps
the revision, so a stale computation loses the compare-and-swap and the
whole cycle runs again on fresh data.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from signoff.config import config
from signoff.core.logs import EventType, Priority, get_event_logger, log_calls
from signoff.errors import ConflictError, NotFoundError, ValidationError
from signoff.models import (
    Approval,
    ApprovalAction,
    ParticipantStatus,
    ReviewEvent,
    ReviewEventType,
    ReviewStatus,
)
from signoff.store import ReviewStore, StatusWrite

from .comments import load_membership
from .notifications import NotificationDispatcher

event_logger = get_event_logger()

_ACTION_EVENTS = {
    ApprovalAction.APPROVED: ReviewEventType.APPROVED,
    ApprovalAction.CHANGES_REQUESTED: ReviewEventType.CHANGES_REQUESTED,
    ApprovalAction.REJECTED: ReviewEventType.REJECTED,
}


def recompute(statuses: Iterable[ParticipantStatus]) -> ReviewStatus:
    """Return the review status implied by ``statuses``.

    Rules, first match wins: everyone approved, anyone rejected, anyone
    asked for changes, otherwise still in progress.
    """
    statuses = list(statuses)
    if statuses and all(s is ParticipantStatus.APPROVED for s in statuses):
        return ReviewStatus.APPROVED
    if ParticipantStatus.REJECTED in statuses:
        return ReviewStatus.REJECTED
    if ParticipantStatus.CHANGES_REQUESTED in statuses:
        return ReviewStatus.CHANGES_REQUESTED
    return ReviewStatus.IN_PROGRESS


def parse_action(action: ApprovalAction | str) -> ApprovalAction:
    if isinstance(action, ApprovalAction):
        return action
    try:
        return ApprovalAction(str(action).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(a.value for a in ApprovalAction)
        raise ValidationError(f"Invalid action '{action}'; expected one of: {allowed}") from exc


class ApprovalAggregator:
    """Record verdicts and keep ``Review.status`` consistent with them."""

    def __init__(
        self,
        store: ReviewStore,
        notifier: NotificationDispatcher,
        *,
        attempts: int | None = None,
        retry_wait: float | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.attempts = attempts or config.review.approval_attempts
        self.retry_wait = (
            retry_wait if retry_wait is not None else config.review.approval_retry_wait
        )

    @log_calls
    async def record_approval(
        self,
        review_version_id: UUID,
        participant_id: UUID,
        action: ApprovalAction | str,
        comment: str | None = None,
    ) -> ReviewStatus:
        """Persist a verdict and return the resulting review status."""
        verdict = parse_action(action)
        version, participant = await load_membership(
            self.store, review_version_id, participant_id
        )
        recorded = await self.store.record_approval(
            Approval(
                review_version_id=version.id,
                participant_id=participant.id,
                action=verdict,
                comment=comment.strip() if comment and comment.strip() else None,
            )
        )
        event_logger.info(
            f"Approval recorded: {verdict.value}",
            event_type=EventType.APPROVAL_RECORDED,
            review_id=recorded.review_id,
            participant_id=participant.id,
            previous_status=recorded.previous_status.value,
            version_number=version.version_number,
        )

        previous, status = await self.update_review_status(recorded.review_id)

        self.notifier.dispatch(
            ReviewEvent(
                type=_ACTION_EVENTS[verdict],
                review_id=recorded.review_id,
                participant_id=participant.id,
                payload={
                    "review_version_id": str(version.id),
                    "reviewer_email": participant.email,
                    "comment": recorded.approval.comment,
                },
            )
        )
        if previous is not status:
            self.notifier.dispatch(
                ReviewEvent(
                    type=ReviewEventType.REVIEW_STATUS_CHANGED,
                    review_id=recorded.review_id,
                    payload={"from": previous.value, "to": status.value},
                )
            )
        return status

    async def update_review_status(self, review_id: UUID) -> tuple[ReviewStatus, ReviewStatus]:
        """Recompute and store the status of ``review_id``.

        Returns ``(previous, current)``.  Raises :class:`ConflictError` when
        every attempt lost the compare-and-swap.
        """

        def _before_sleep(state: RetryCallState) -> None:
            event_logger.log_retry_attempt(
                attempt=state.attempt_number,
                max_attempts=self.attempts,
                reason="review revision moved during status recomputation",
                review_id=review_id,
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.attempts),
                wait=wait_fixed(self.retry_wait),
                retry=retry_if_exception_type(ConflictError),
                before_sleep=_before_sleep,
                reraise=True,
            ):
                with attempt:
                    return await self._recompute_once(review_id)
        except ConflictError:
            event_logger.log_retry_exhausted(
                total_attempts=self.attempts, review_id=review_id
            )
            raise
        raise RuntimeError("Unreachable")  # pragma: no cover - safety

    async def _recompute_once(self, review_id: UUID) -> tuple[ReviewStatus, ReviewStatus]:
        snapshot = await self.store.get_status_snapshot(review_id)
        if snapshot is None:
            raise NotFoundError("Review not found")
        status = recompute(snapshot.participant_statuses)
        # Write even when unchanged so a concurrent verdict is detected
        outcome = await self.store.compare_and_set_review_status(
            review_id, snapshot.revision, status
        )
        if outcome is StatusWrite.CONFLICT:
            raise ConflictError("Review changed while its status was being updated")
        if outcome is StatusWrite.APPLIED:
            event_logger.info(
                f"Review status {snapshot.status.value} -> {status.value}",
                event_type=EventType.REVIEW_STATUS_CHANGED,
                priority=Priority.HIGH,
                review_id=review_id,
                revision=snapshot.revision,
            )
        return snapshot.status, status


__all__ = ["ApprovalAggregator", "recompute", "parse_action"]
