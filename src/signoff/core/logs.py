"""Structured event logging for the review workflow.

Every significant step (store access, token checks, status recomputation,
retries) is recorded as a :class:`StructuredLogEvent`.  Events are forwarded
to the standard ``logging`` hierarchy under ``signoff`` and kept in a
bounded in-memory history that the web layer and tests can inspect.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, cast
from uuid import uuid4


class LogLevel(Enum):
    """Log levels with numeric values for filtering."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class EventType(Enum):
    """Event types for structured logging."""

    # System events
    SYSTEM = "system"

    # Review workflow events
    REVIEW_INITIATED = "review_initiated"
    REVIEW_VERSION_ADDED = "review_version_added"
    REVIEW_STATUS_CHANGED = "review_status_changed"
    PARTICIPANT_STATUS = "participant_status"
    COMMENT_ADDED = "comment_added"
    APPROVAL_RECORDED = "approval_recorded"

    # Token events
    TOKEN_ISSUED = "token_issued"
    TOKEN_VALIDATED = "token_validated"
    TOKEN_REJECTED = "token_rejected"

    # Database operation events
    DATABASE_OPERATION = "database_operation"

    # Notification delivery
    NOTIFICATION = "notification"

    # Error events
    ERROR = "error"
    WARNING = "warning"
    ERROR_HANDLING_START = "error_handling_start"
    RETRY_ATTEMPT = "retry_attempt"
    RETRY_EXHAUSTED = "retry_exhausted"


class Priority(Enum):
    """Event priority levels."""

    CRITICAL = 1  # Errors, store failures
    HIGH = 2  # Status changes, auth failures
    NORMAL = 3  # Routine workflow events
    LOW = 4  # Call tracing


@dataclass
class EventMetrics:
    """Counters for emitted events."""

    total_events: int = 0
    events_by_type: dict[str, int] = field(default_factory=dict)
    events_by_priority: dict[int, int] = field(default_factory=dict)

    def record_event(self, event_type: str, priority: int) -> None:
        """Record an event for metrics tracking."""
        self.total_events += 1
        self.events_by_type[event_type] = self.events_by_type.get(event_type, 0) + 1
        self.events_by_priority[priority] = self.events_by_priority.get(priority, 0) + 1


@dataclass
class StructuredLogEvent:
    """Structured log event with workflow metadata."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = field(default_factory=time.time)
    event_type: EventType = EventType.SYSTEM
    level: LogLevel = LogLevel.INFO
    priority: Priority = Priority.NORMAL
    message: str = ""
    component: str | None = None
    review_id: str | None = None
    participant_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "level": self.level.name,
            "priority": self.priority.name,
            "message": self.message,
            "component": self.component,
            "review_id": self.review_id,
            "participant_id": self.participant_id,
            "metadata": self.metadata,
        }


class EventLogger:
    """Structured logger backed by the ``signoff`` logging hierarchy."""

    def __init__(self, max_events: int = 5000):
        self.max_events = max_events
        self._events: deque[StructuredLogEvent] = deque(maxlen=max_events)
        self._metrics = EventMetrics()
        self._traditional_logger = logging.getLogger("signoff")

    def log(
        self,
        level: LogLevel,
        message: str,
        event_type: EventType = EventType.SYSTEM,
        priority: Priority = Priority.NORMAL,
        component: str | None = None,
        review_id: Any = None,
        participant_id: Any = None,
        **metadata: Any,
    ) -> StructuredLogEvent:
        """Record ``message`` and forward it to the traditional logger."""
        # Callers pass either flat keywords or a prepared ``metadata`` dict
        nested = metadata.pop("metadata", None)
        if isinstance(nested, dict):
            metadata.update(nested)

        event = StructuredLogEvent(
            level=level,
            event_type=event_type,
            priority=priority,
            message=message,
            component=component,
            review_id=str(review_id) if review_id is not None else None,
            participant_id=str(participant_id) if participant_id is not None else None,
            metadata=metadata,
        )
        self._metrics.record_event(event.event_type.value, event.priority.value)
        self._events.append(event)
        self._log_to_traditional(event)
        return event

    def _log_to_traditional(self, event: StructuredLogEvent) -> None:
        context = []
        if event.review_id:
            context.append(f"review={event.review_id}")
        if event.participant_id:
            context.append(f"participant={event.participant_id}")
        suffix = f" ({', '.join(context)})" if context else ""
        self._traditional_logger.log(
            event.level.value,
            "[%s] %s%s",
            event.event_type.value,
            event.message,
            suffix,
            extra={"event_id": event.event_id, "event_metadata": event.metadata},
        )

    def debug(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log debug message."""
        return self.log(LogLevel.DEBUG, message, priority=Priority.LOW, **kwargs)

    def info(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log info message."""
        return self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log warning message."""
        kwargs.setdefault("event_type", EventType.WARNING)
        kwargs.setdefault("priority", Priority.HIGH)
        return self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        """Log error message."""
        kwargs.setdefault("event_type", EventType.ERROR)
        kwargs.setdefault("priority", Priority.CRITICAL)
        return self.log(LogLevel.ERROR, message, **kwargs)

    def log_error_handling_start(
        self, error_type: str, error_msg: str, context: str, **kwargs: Any
    ) -> StructuredLogEvent:
        """Log start of error handling for an unexpected failure."""
        return self.log(
            LogLevel.ERROR,
            f"{context}: {error_type}: {error_msg}",
            event_type=EventType.ERROR_HANDLING_START,
            priority=Priority.CRITICAL,
            error_type=error_type,
            **kwargs,
        )

    def log_retry_attempt(
        self, attempt: int, max_attempts: int, reason: str, **kwargs: Any
    ) -> StructuredLogEvent:
        """Log retry attempts."""
        return self.log(
            LogLevel.INFO,
            f"Retry attempt {attempt}/{max_attempts}: {reason}",
            event_type=EventType.RETRY_ATTEMPT,
            priority=Priority.NORMAL,
            attempt=attempt,
            max_attempts=max_attempts,
            **kwargs,
        )

    def log_retry_exhausted(self, total_attempts: int, **kwargs: Any) -> StructuredLogEvent:
        """Log retry exhaustion."""
        return self.log(
            LogLevel.ERROR,
            f"Retry attempts exhausted after {total_attempts} tries",
            event_type=EventType.RETRY_EXHAUSTED,
            priority=Priority.CRITICAL,
            total_attempts=total_attempts,
            **kwargs,
        )

    def get_events(
        self,
        event_type: EventType | None = None,
        review_id: Any = None,
        limit: int = 100,
    ) -> list[StructuredLogEvent]:
        """Return the most recent events, newest last."""
        events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if review_id is not None:
            events = [e for e in events if e.review_id == str(review_id)]
        return events[-limit:]

    def get_metrics(self) -> dict[str, Any]:
        return {
            "total_events": self._metrics.total_events,
            "events_by_type": dict(self._metrics.events_by_type),
            "events_by_priority": dict(self._metrics.events_by_priority),
            "stored_events": len(self._events),
        }

    def clear_logs(self) -> None:
        """Remove all stored events."""
        self._events.clear()
        self._metrics = EventMetrics()


# Global event logger instance
_event_logger: EventLogger | None = None


def get_event_logger() -> EventLogger:
    """Get global event logger instance."""
    global _event_logger
    if _event_logger is None:
        _event_logger = EventLogger()
    return _event_logger


def get_logger(name: str) -> logging.Logger:
    """Return a namespaced logger under the Signoff root logger."""
    return get_event_logger()._traditional_logger.getChild(name)


def log_message(message: str) -> None:
    """Store message in structured logging system."""
    get_event_logger().info(message, event_type=EventType.SYSTEM)


def log_calls(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorate func to log calls at the DEBUG level."""
    event_logger = get_event_logger()

    if asyncio.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.time()
            event_logger.debug(
                f"Entering {func.__qualname__}",
                component=func.__module__,
                function=func.__qualname__,
            )
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                event_logger.debug(
                    f"Error in {func.__qualname__}: {type(e).__name__}",
                    component=func.__module__,
                    function=func.__qualname__,
                    duration_ms=(time.time() - start_time) * 1000,
                )
                raise
            event_logger.debug(
                f"Exiting {func.__qualname__} successfully",
                component=func.__module__,
                function=func.__qualname__,
                duration_ms=(time.time() - start_time) * 1000,
            )
            return result

        return cast(Callable[..., Any], async_wrapper)

    @functools.wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        start_time = time.time()
        result = func(*args, **kwargs)
        event_logger.debug(
            f"Called {func.__qualname__}",
            component=func.__module__,
            function=func.__qualname__,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return result

    return cast(Callable[..., Any], sync_wrapper)


def clear_logs() -> None:
    """Remove all stored log events."""
    get_event_logger().clear_logs()


__all__ = [
    "EventLogger",
    "StructuredLogEvent",
    "EventMetrics",
    "LogLevel",
    "EventType",
    "Priority",
    "get_event_logger",
    "get_logger",
    "log_message",
    "log_calls",
    "clear_logs",
]
