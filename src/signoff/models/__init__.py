"""Pydantic models representing review workflow entities."""

from .approval import Approval
from .base import Base  # Import SQLAlchemy Base
from .base_model import SignoffBaseModel
from .comment import Comment, CommentMetadata
from .events import ReviewEvent, ReviewEventType
from .mixins import IDMixin, TimestampsMixin, utcnow
from .participant import ApprovalAction, Participant, ParticipantStatus
from .responses import (
    AssetSnapshot,
    CommentCreated,
    InitiateReviewResult,
    ParticipantHistoryInfo,
    ParticipantToken,
    PortalComment,
    ReviewHistoryItem,
    ReviewPortalData,
    TokenContext,
)
from .result import ServiceResult
from .review import Review, ReviewStatus, ReviewVersion
from .sqlalchemy_models import (
    AssetSQL,
    ReviewApprovalSQL,
    ReviewCommentSQL,
    ReviewParticipantSQL,
    ReviewSQL,
    ReviewTokenSQL,
    ReviewVersionSQL,
)
from .token import ReviewToken

__all__ = [
    "SignoffBaseModel",
    "IDMixin",
    "TimestampsMixin",
    "utcnow",
    "Review",
    "ReviewStatus",
    "ReviewVersion",
    "Participant",
    "ParticipantStatus",
    "ApprovalAction",
    "Comment",
    "CommentMetadata",
    "Approval",
    "ReviewToken",
    "ReviewEvent",
    "ReviewEventType",
    "AssetSnapshot",
    "PortalComment",
    "ReviewPortalData",
    "ParticipantHistoryInfo",
    "ReviewHistoryItem",
    "ParticipantToken",
    "InitiateReviewResult",
    "CommentCreated",
    "TokenContext",
    "ServiceResult",
    "Base",  # Export SQLAlchemy Base
    "AssetSQL",
    "ReviewSQL",
    "ReviewVersionSQL",
    "ReviewParticipantSQL",
    "ReviewCommentSQL",
    "ReviewApprovalSQL",
    "ReviewTokenSQL",
]
