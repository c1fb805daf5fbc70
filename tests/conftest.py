# ruff: noqa: S101
"""Shared fixtures for the review workflow tests."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

import pytest

from signoff.core.logs import clear_logs
from signoff.models import InitiateReviewResult, ReviewEvent, ReviewEventType
from signoff.review import ReviewOrchestrator
from signoff.store import MemoryReviewStore

EMAILS = ("ana@example.com", "ben@example.com", "cy@example.com")


class RecordingPublisher:
    """Publisher stub that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[ReviewEvent] = []

    async def publish(self, event: ReviewEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: ReviewEventType) -> list[ReviewEvent]:
        return [e for e in self.events if e.type is event_type]


@pytest.fixture(autouse=True)
def _clean_event_log() -> None:
    clear_logs()


@pytest.fixture
def store() -> MemoryReviewStore:
    return MemoryReviewStore()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def orchestrator(store: MemoryReviewStore, publisher: RecordingPublisher) -> ReviewOrchestrator:
    orch = ReviewOrchestrator(store, publisher)
    orch.aggregator.retry_wait = 0
    return orch


@pytest.fixture
def start_review(
    orchestrator: ReviewOrchestrator,
) -> Callable[..., Awaitable[InitiateReviewResult]]:
    async def _start(
        emails: Sequence[str] = EMAILS,
        asset_id: str = "a1",
        client_id: str = "c1",
    ) -> InitiateReviewResult:
        result = await orchestrator.initiate_review(asset_id, client_id, list(emails), "u1")
        assert result.success, result.error
        return result.unwrap()

    return _start
