# src/signoff/review/notifications.py
"""Fire-and-forget delivery of review events."""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from signoff.config import config
from signoff.core.logs import EventType, get_event_logger
from signoff.models import ReviewEvent

event_logger = get_event_logger()


@runtime_checkable
class NotificationPublisher(Protocol):
    """Anything that can deliver a :class:`ReviewEvent`."""

    async def publish(self, event: ReviewEvent) -> None: ...


class LoggingNotificationPublisher:
    """Publisher that only records events in the structured log."""

    async def publish(self, event: ReviewEvent) -> None:
        event_logger.info(
            f"Review event {event.type.value}",
            event_type=EventType.NOTIFICATION,
            review_id=event.review_id,
            participant_id=event.participant_id,
            recipient=event.recipient_email,
        )


class FanoutPublisher:
    """Deliver every event to several publishers in order."""

    def __init__(self, *publishers: NotificationPublisher) -> None:
        self.publishers = list(publishers)

    async def publish(self, event: ReviewEvent) -> None:
        for publisher in self.publishers:
            await publisher.publish(event)


class NotificationDispatcher:
    """Schedule publishes without making callers wait for them.

    Tasks are tracked until they finish so they are not garbage collected
    mid-flight.  Failures and timeouts are logged and never reach the
    operation that triggered the event.
    """

    def __init__(
        self,
        publisher: NotificationPublisher | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self.publisher: NotificationPublisher = publisher or LoggingNotificationPublisher()
        self.timeout = timeout if timeout is not None else config.review.notify_timeout
        self._tasks: set[asyncio.Task[None]] = set()

    def dispatch(self, event: ReviewEvent) -> asyncio.Task[None]:
        task = asyncio.create_task(self._deliver(event), name=f"notify-{event.type.value}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def dispatch_all(self, events: list[ReviewEvent]) -> None:
        for event in events:
            self.dispatch(event)

    async def _deliver(self, event: ReviewEvent) -> None:
        await asyncio.wait_for(self.publisher.publish(event), timeout=self.timeout)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            event_logger.warning(
                f"Notification delivery failed: {type(exc).__name__}: {exc}",
                event_type=EventType.NOTIFICATION,
                task=task.get_name(),
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled delivery to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = [
    "NotificationPublisher",
    "LoggingNotificationPublisher",
    "FanoutPublisher",
    "NotificationDispatcher",
]
