"""Review workflow services."""

from .aggregator import ApprovalAggregator, parse_action, recompute
from .comments import CommentService
from .notifications import (
    FanoutPublisher,
    LoggingNotificationPublisher,
    NotificationDispatcher,
    NotificationPublisher,
)
from .orchestrator import ReviewOrchestrator, normalize_emails
from .tokens import IssuedToken, TokenAuthenticator, hash_secret

__all__ = [
    "ApprovalAggregator",
    "CommentService",
    "FanoutPublisher",
    "IssuedToken",
    "LoggingNotificationPublisher",
    "NotificationDispatcher",
    "NotificationPublisher",
    "ReviewOrchestrator",
    "TokenAuthenticator",
    "hash_secret",
    "normalize_emails",
    "parse_action",
    "recompute",
]
