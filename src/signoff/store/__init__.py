"""Review persistence backends."""

from .base import (
    ApprovalRecorded,
    CreatedReview,
    ReviewStatusSnapshot,
    ReviewStore,
    StatusWrite,
    TokenCheck,
    TokenConsumption,
    changes_aggregate,
)
from .memory import MemoryReviewStore
from .sql import SqlReviewStore

__all__ = [
    "ReviewStore",
    "CreatedReview",
    "ApprovalRecorded",
    "TokenConsumption",
    "TokenCheck",
    "ReviewStatusSnapshot",
    "StatusWrite",
    "changes_aggregate",
    "MemoryReviewStore",
    "SqlReviewStore",
]
