# src/signoff/web/routes.py
"""HTTP routes for internal users and token-bearing reviewers."""

from __future__ import annotations

import secrets
from typing import Any, TypeVar
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    Header,
    HTTPException,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from signoff.config import config
from signoff.core.logging import get_logger
from signoff.errors import ErrorKind, ValidationError
from signoff.models import (
    CommentCreated,
    InitiateReviewResult,
    ReviewHistoryItem,
    ReviewPortalData,
    ReviewVersion,
    ServiceResult,
    TokenContext,
)
from signoff.review import ReviewOrchestrator, parse_action
from signoff.review.operations import GENERIC_FAILURE
from signoff.review.tokens import INVALID_TOKEN_MESSAGE

logger = get_logger(__name__)

T = TypeVar("T")

# Create the router
router = APIRouter()

_bearer = HTTPBearer(auto_error=False)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTH: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class InitiateReviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    asset_id: str = Field(default="", alias="assetId")
    reviewer_emails: list[str] = Field(default_factory=list, alias="reviewerEmails")
    title: str | None = None
    description: str | None = None


class CommentRequest(BaseModel):
    content: str = ""
    metadata: dict[str, Any] | None = None


class ApprovalRequest(BaseModel):
    action: str
    comment: str | None = None


def get_orchestrator(request: Request) -> ReviewOrchestrator:
    return request.app.state.orchestrator


def require_internal_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> None:
    """Check the shared bearer token guarding internal routes."""
    if config.system.disable_auth:
        return
    if credentials is None or not secrets.compare_digest(
        credentials.credentials, config.system.web_token
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )


def unwrap(result: ServiceResult[T]) -> T:
    """Return the result's data or raise the matching HTTP error."""
    if result.success:
        return result.data  # type: ignore[return-value]
    kind = result.error_kind or ErrorKind.PERSISTENCE
    if kind is ErrorKind.AUTH:
        detail = INVALID_TOKEN_MESSAGE
    elif kind is ErrorKind.NOT_FOUND:
        detail = "Not found."
    elif kind is ErrorKind.PERSISTENCE:
        detail = GENERIC_FAILURE
    else:
        detail = result.error or kind.value
    raise HTTPException(status_code=_STATUS_BY_KIND[kind], detail=detail)


# --- internal routes ---------------------------------------------------


@router.post(
    "/api/reviews",
    status_code=status.HTTP_201_CREATED,
    response_model=InitiateReviewResult,
    dependencies=[Depends(require_internal_user)],
)
async def initiate_review(
    body: InitiateReviewRequest,
    client_id: str = Header(..., alias="X-Client-Id"),
    user_id: str | None = Header(default=None, alias="X-User-Id"),
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
) -> InitiateReviewResult:
    """Start a review and return one access token per reviewer."""
    result = await orchestrator.initiate_review(
        body.asset_id,
        client_id,
        body.reviewer_emails,
        user_id,
        title=body.title,
        description=body.description,
    )
    return unwrap(result)


@router.post(
    "/api/reviews/{review_id}/versions",
    status_code=status.HTTP_201_CREATED,
    response_model=ReviewVersion,
    dependencies=[Depends(require_internal_user)],
)
async def add_review_version(
    review_id: UUID,
    client_id: str = Header(..., alias="X-Client-Id"),
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
) -> ReviewVersion:
    return unwrap(await orchestrator.add_review_version(review_id, client_id))


@router.get(
    "/api/assets/{asset_id}/reviews",
    response_model=list[ReviewHistoryItem],
    dependencies=[Depends(require_internal_user)],
)
async def get_asset_review_history(
    asset_id: str,
    client_id: str = Header(..., alias="X-Client-Id"),
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
) -> list[ReviewHistoryItem]:
    return unwrap(await orchestrator.get_asset_review_history(asset_id, client_id))


# --- reviewer portal ---------------------------------------------------


async def _authorize(
    orchestrator: ReviewOrchestrator, token: str, *, consume: bool = False
) -> TokenContext:
    return unwrap(await orchestrator.validate_token(token, consume=consume))


@router.get("/api/review/{token}", response_model=ReviewPortalData)
async def get_review_data(
    token: str, orchestrator: ReviewOrchestrator = Depends(get_orchestrator)
) -> ReviewPortalData:
    """Return what a reviewer sees for the latest version."""
    context = await _authorize(orchestrator, token)
    return unwrap(
        await orchestrator.get_review_data(context.review_version_id, context.participant_id)
    )


@router.post(
    "/api/review/{token}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=CommentCreated,
)
async def add_comment(
    token: str,
    body: CommentRequest,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
) -> CommentCreated:
    context = await _authorize(orchestrator, token)
    return unwrap(
        await orchestrator.add_comment(
            body.content, body.metadata, context.review_version_id, context.participant_id
        )
    )


@router.post("/api/review/{token}/approve")
async def record_approval(
    token: str,
    body: ApprovalRequest,
    orchestrator: ReviewOrchestrator = Depends(get_orchestrator),
) -> dict[str, str]:
    """Record a verdict; with single-use approval the token is spent only for a valid action."""
    context = await _authorize(orchestrator, token)
    try:
        action = parse_action(body.action)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if config.review.single_use_approval:
        context = await _authorize(orchestrator, token, consume=True)
    review_status = unwrap(
        await orchestrator.record_approval(
            context.review_version_id, context.participant_id, action, body.comment
        )
    )
    return {
        "message": f"Review action '{action.value}' recorded.",
        "review_status": review_status.value,
    }


@router.websocket("/ws/notifications")
async def notifications_feed(websocket: WebSocket) -> None:
    """Stream review events to connected dashboards."""
    manager = websocket.app.state.websocket_manager
    await manager.connect(websocket)
    try:
        # Events are pushed by the manager; incoming frames are ignored
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
