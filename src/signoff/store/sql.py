# src/signoff/store/sql.py
"""PostgreSQL implementation of :class:`ReviewStore`."""

# mypy: disable-error-code=arg-type

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, bindparam
from sqlalchemy import text as sa_text
from sqlalchemy.ext.asyncio import AsyncSession

from signoff.core.logs import EventType, get_event_logger
from signoff.models import (
    Approval,
    AssetSnapshot,
    Comment,
    CommentMetadata,
    Participant,
    ParticipantHistoryInfo,
    ParticipantStatus,
    Review,
    ReviewHistoryItem,
    ReviewStatus,
    ReviewToken,
    ReviewVersion,
)

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
from .db import _maybe_await, get_pg

event_logger = get_event_logger()

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_REVIEW_COLUMNS = (
    "id, asset_id, client_id, title, description, status, "
    "initiated_by_user_id, revision, created_at, updated_at"
)
_PARTICIPANT_COLUMNS = "id, review_id, user_id, email, name, status, added_at"
_TOKEN_COLUMNS = "id, review_participant_id, token_hash, expires_at, used_at, created_at"


def _review(row: Any) -> Review:
    return Review(
        id=row[0],
        asset_id=row[1],
        client_id=row[2],
        title=row[3],
        description=row[4],
        status=row[5],
        initiator_id=row[6],
        revision=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


def _participant(row: Any) -> Participant:
    return Participant(
        id=row[0],
        review_id=row[1],
        user_id=row[2],
        email=row[3],
        name=row[4],
        status=row[5],
        added_at=row[6],
    )


def _token(row: Any) -> ReviewToken:
    return ReviewToken(
        id=row[0],
        participant_id=row[1],
        secret_hash=row[2],
        expires_at=row[3],
        used_at=row[4],
        created_at=row[5],
    )


class SqlReviewStore(ReviewStore):
    """Review store over the ``review_*`` tables.

    Each method runs in its own session; writes commit before returning and
    roll back on any error.
    """

    def __init__(self, session_factory: SessionFactory = get_pg) -> None:
        self._session = session_factory

    async def _fetchone(self, session: AsyncSession, sql: str, params: dict[str, Any]) -> Any:
        result = await session.execute(sa_text(sql), params)
        return await _maybe_await(result.fetchone())

    async def _fetchall(self, session: AsyncSession, sql: str, params: dict[str, Any]) -> list[Any]:
        result = await session.execute(sa_text(sql), params)
        return list(await _maybe_await(result.fetchall()))

    async def _bump_revision(self, session: AsyncSession, review_id: UUID) -> None:
        await session.execute(
            sa_text(
                "UPDATE reviews SET revision = revision + 1, updated_at = NOW() "
                "WHERE id = :rid"
            ),
            {"rid": review_id},
        )

    # --- creation -----------------------------------------------------

    async def create_review(
        self,
        review: Review,
        participants: list[Participant],
        tokens: list[ReviewToken],
    ) -> CreatedReview:
        start_time = time.time()
        version = ReviewVersion(review_id=review.id, version_number=1)
        async with self._session() as session:
            await session.execute(
                sa_text(
                    "INSERT INTO reviews (id, asset_id, client_id, title, description, "
                    "status, initiated_by_user_id, revision, created_at) "
                    "VALUES (:id, :asset, :client, :title, :descr, :status, :initiator, "
                    ":revision, :created)"
                ),
                {
                    "id": review.id,
                    "asset": review.asset_id,
                    "client": review.client_id,
                    "title": review.title,
                    "descr": review.description,
                    "status": review.status.value,
                    "initiator": review.initiator_id,
                    "revision": review.revision,
                    "created": review.created_at,
                },
            )
            await session.execute(
                sa_text(
                    "INSERT INTO review_versions (id, review_id, version_number, created_at) "
                    "VALUES (:id, :rid, :num, :created)"
                ),
                {
                    "id": version.id,
                    "rid": review.id,
                    "num": version.version_number,
                    "created": version.created_at,
                },
            )
            if participants:
                await session.execute(
                    sa_text(
                        "INSERT INTO review_participants "
                        "(id, review_id, user_id, email, name, status, added_at) "
                        "VALUES (:id, :rid, :uid, :email, :name, :status, :added)"
                    ),
                    [
                        {
                            "id": p.id,
                            "rid": review.id,
                            "uid": p.user_id,
                            "email": p.email,
                            "name": p.name,
                            "status": p.status.value,
                            "added": p.added_at,
                        }
                        for p in participants
                    ],
                )
            if tokens:
                await session.execute(
                    sa_text(
                        "INSERT INTO review_tokens "
                        "(id, review_participant_id, token_hash, expires_at, created_at) "
                        "VALUES (:id, :pid, :hash, :expires, :created)"
                    ),
                    [
                        {
                            "id": t.id,
                            "pid": t.participant_id,
                            "hash": t.secret_hash,
                            "expires": t.expires_at,
                            "created": t.created_at,
                        }
                        for t in tokens
                    ],
                )
            await session.commit()

        event_logger.debug(
            f"Created review {review.id} with {len(participants)} participants",
            event_type=EventType.DATABASE_OPERATION,
            review_id=review.id,
            operation="insert",
            table="reviews",
            duration=time.time() - start_time,
        )
        return CreatedReview(
            review=review, version=version, participants=participants, tokens=tokens
        )

    async def add_version(self, review_id: UUID) -> ReviewVersion:
        async with self._session() as session:
            # Row lock serializes concurrent allocations for the same review
            locked = await self._fetchone(
                session, "SELECT id FROM reviews WHERE id = :rid FOR UPDATE", {"rid": review_id}
            )
            if locked is None:
                raise KeyError(review_id)
            row = await self._fetchone(
                session,
                "SELECT COALESCE(MAX(version_number), 0) FROM review_versions "
                "WHERE review_id = :rid",
                {"rid": review_id},
            )
            version = ReviewVersion(review_id=review_id, version_number=int(row[0]) + 1)
            await session.execute(
                sa_text(
                    "INSERT INTO review_versions (id, review_id, version_number, created_at) "
                    "VALUES (:id, :rid, :num, :created)"
                ),
                {
                    "id": version.id,
                    "rid": review_id,
                    "num": version.version_number,
                    "created": version.created_at,
                },
            )
            await session.commit()
        return version

    # --- reads --------------------------------------------------------

    async def get_review(self, review_id: UUID) -> Review | None:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE id = :rid",
                {"rid": review_id},
            )
        return _review(row) if row else None

    async def get_version(self, version_id: UUID) -> ReviewVersion | None:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                "SELECT id, review_id, version_number, created_at FROM review_versions "
                "WHERE id = :vid",
                {"vid": version_id},
            )
        if row is None:
            return None
        return ReviewVersion(id=row[0], review_id=row[1], version_number=row[2], created_at=row[3])

    async def list_versions(self, review_id: UUID) -> list[ReviewVersion]:
        async with self._session() as session:
            rows = await self._fetchall(
                session,
                "SELECT id, review_id, version_number, created_at FROM review_versions "
                "WHERE review_id = :rid ORDER BY version_number",
                {"rid": review_id},
            )
        return [
            ReviewVersion(id=r[0], review_id=r[1], version_number=r[2], created_at=r[3])
            for r in rows
        ]

    async def get_participant(self, participant_id: UUID) -> Participant | None:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                f"SELECT {_PARTICIPANT_COLUMNS} FROM review_participants WHERE id = :pid",
                {"pid": participant_id},
            )
        return _participant(row) if row else None

    async def list_participants(self, review_id: UUID) -> list[Participant]:
        async with self._session() as session:
            rows = await self._fetchall(
                session,
                f"SELECT {_PARTICIPANT_COLUMNS} FROM review_participants "
                "WHERE review_id = :rid ORDER BY added_at, email",
                {"rid": review_id},
            )
        return [_participant(r) for r in rows]

    async def list_comments(self, version_id: UUID) -> list[Comment]:
        async with self._session() as session:
            rows = await self._fetchall(
                session,
                "SELECT id, review_version_id, review_participant_id, comment_text, "
                "metadata, created_at FROM review_comments "
                "WHERE review_version_id = :vid ORDER BY created_at",
                {"vid": version_id},
            )
        return [
            Comment(
                id=r[0],
                review_version_id=r[1],
                participant_id=r[2],
                content=r[3],
                metadata=CommentMetadata.model_validate(r[4]) if r[4] else None,
                created_at=r[5],
            )
            for r in rows
        ]

    async def list_approvals(self, version_id: UUID) -> list[Approval]:
        async with self._session() as session:
            rows = await self._fetchall(
                session,
                "SELECT id, review_version_id, review_participant_id, action, comment, "
                "created_at FROM review_approvals "
                "WHERE review_version_id = :vid ORDER BY created_at",
                {"vid": version_id},
            )
        return [
            Approval(
                id=r[0],
                review_version_id=r[1],
                participant_id=r[2],
                action=r[3],
                comment=r[4],
                created_at=r[5],
            )
            for r in rows
        ]

    async def get_asset_snapshot(self, asset_id: str) -> AssetSnapshot | None:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                "SELECT id, name, type, file_url FROM assets WHERE id = :aid",
                {"aid": asset_id},
            )
        if row is None:
            return None
        return AssetSnapshot(id=str(row[0]), name=row[1], type=row[2], url=row[3])

    async def get_asset_review_history(
        self, asset_id: str, client_id: str
    ) -> list[ReviewHistoryItem]:
        async with self._session() as session:
            reviews = await self._fetchall(
                session,
                "SELECT r.id, r.title, r.status, r.created_at, r.initiated_by_user_id, "
                "COALESCE((SELECT MAX(v.version_number) FROM review_versions v "
                "WHERE v.review_id = r.id), 0), "
                "(SELECT COUNT(*) FROM review_comments c "
                "JOIN review_versions v ON v.id = c.review_version_id "
                "WHERE v.review_id = r.id) "
                "FROM reviews r WHERE r.asset_id = :aid AND r.client_id = :cid "
                "ORDER BY r.created_at DESC",
                {"aid": asset_id, "cid": client_id},
            )
            if not reviews:
                return []
            participant_rows = await self._fetchall(
                session,
                "SELECT review_id, email, status FROM review_participants "
                "WHERE review_id IN (SELECT id FROM reviews "
                "WHERE asset_id = :aid AND client_id = :cid) "
                "ORDER BY added_at, email",
                {"aid": asset_id, "cid": client_id},
            )

        by_review: dict[UUID, list[ParticipantHistoryInfo]] = {}
        for review_id, email, status in participant_rows:
            by_review.setdefault(review_id, []).append(
                ParticipantHistoryInfo(email=email, status=status)
            )
        return [
            ReviewHistoryItem(
                review_id=r[0],
                title=r[1],
                status=r[2],
                created_at=r[3],
                initiated_by=r[4],
                latest_version_number=int(r[5]),
                comments_count=int(r[6]),
                participants=by_review.get(r[0], []),
            )
            for r in reviews
        ]

    # --- tokens -------------------------------------------------------

    async def find_token(self, secret_hash: str) -> ReviewToken | None:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                f"SELECT {_TOKEN_COLUMNS} FROM review_tokens WHERE token_hash = :hash",
                {"hash": secret_hash},
            )
        return _token(row) if row else None

    async def consume_token(self, secret_hash: str, now: datetime) -> TokenConsumption:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                "UPDATE review_tokens SET used_at = :now "
                "WHERE token_hash = :hash AND used_at IS NULL AND expires_at > :now "
                f"RETURNING {_TOKEN_COLUMNS}",
                {"hash": secret_hash, "now": now},
            )
            if row is not None:
                await session.commit()
                return TokenConsumption(TokenCheck.CONSUMED, _token(row))
            row = await self._fetchone(
                session,
                f"SELECT {_TOKEN_COLUMNS} FROM review_tokens WHERE token_hash = :hash",
                {"hash": secret_hash},
            )
        if row is None:
            return TokenConsumption(TokenCheck.NOT_FOUND)
        token = _token(row)
        if token.used_at is not None:
            return TokenConsumption(TokenCheck.ALREADY_USED, token)
        return TokenConsumption(TokenCheck.EXPIRED, token)

    # --- participant and review writes -------------------------------

    async def advance_participant_status(
        self,
        participant_id: UUID,
        from_statuses: Iterable[ParticipantStatus],
        to_status: ParticipantStatus,
    ) -> bool:
        allowed = [s.value for s in from_statuses]
        if not allowed:
            return False
        stmt = sa_text(
            "UPDATE review_participants p SET status = :to_status "
            "FROM (SELECT id, status FROM review_participants "
            "WHERE id = :pid FOR UPDATE) prev "
            "WHERE p.id = prev.id AND prev.status IN :allowed "
            "RETURNING p.review_id, prev.status"
        ).bindparams(bindparam("allowed", expanding=True))
        async with self._session() as session:
            result = await session.execute(
                stmt, {"to_status": to_status.value, "pid": participant_id, "allowed": allowed}
            )
            row = await _maybe_await(result.fetchone())
            if row is None:
                return False
            if changes_aggregate(ParticipantStatus(row[1]), to_status):
                await self._bump_revision(session, row[0])
            await session.commit()
        return True

    async def add_comment(self, comment: Comment) -> Comment:
        async with self._session() as session:
            await session.execute(
                sa_text(
                    "INSERT INTO review_comments (id, review_version_id, "
                    "review_participant_id, comment_text, metadata, created_at) "
                    "VALUES (:id, :vid, :pid, :text, :meta, :created)"
                ).bindparams(bindparam("meta", type_=JSON)),
                {
                    "id": comment.id,
                    "vid": comment.review_version_id,
                    "pid": comment.participant_id,
                    "text": comment.content,
                    "meta": (
                        comment.metadata.model_dump(mode="json", exclude_none=True)
                        if comment.metadata
                        else None
                    ),
                    "created": comment.created_at,
                },
            )
            await session.commit()
        return comment

    async def record_approval(self, approval: Approval) -> ApprovalRecorded:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                "SELECT p.review_id, p.status FROM review_participants p "
                "JOIN review_versions v ON v.review_id = p.review_id "
                "WHERE p.id = :pid AND v.id = :vid FOR UPDATE OF p",
                {"pid": approval.participant_id, "vid": approval.review_version_id},
            )
            if row is None:
                raise KeyError((approval.review_version_id, approval.participant_id))
            review_id, previous = row[0], ParticipantStatus(row[1])
            await session.execute(
                sa_text(
                    "INSERT INTO review_approvals (id, review_version_id, "
                    "review_participant_id, action, comment, created_at) "
                    "VALUES (:id, :vid, :pid, :action, :comment, :created)"
                ),
                {
                    "id": approval.id,
                    "vid": approval.review_version_id,
                    "pid": approval.participant_id,
                    "action": approval.action.value,
                    "comment": approval.comment,
                    "created": approval.created_at,
                },
            )
            await session.execute(
                sa_text("UPDATE review_participants SET status = :status WHERE id = :pid"),
                {"status": approval.action.value, "pid": approval.participant_id},
            )
            await self._bump_revision(session, review_id)
            await session.commit()
        return ApprovalRecorded(approval=approval, review_id=review_id, previous_status=previous)

    async def get_status_snapshot(self, review_id: UUID) -> ReviewStatusSnapshot | None:
        async with self._session() as session:
            # One statement so the revision and statuses come from the same snapshot
            rows = await self._fetchall(
                session,
                "SELECT r.revision, r.status, p.status FROM reviews r "
                "LEFT JOIN review_participants p ON p.review_id = r.id "
                "WHERE r.id = :rid",
                {"rid": review_id},
            )
        if not rows:
            return None
        return ReviewStatusSnapshot(
            review_id=review_id,
            revision=int(rows[0][0]),
            status=ReviewStatus(rows[0][1]),
            participant_statuses=[ParticipantStatus(r[2]) for r in rows if r[2] is not None],
        )

    async def compare_and_set_review_status(
        self, review_id: UUID, expected_revision: int, status: ReviewStatus
    ) -> StatusWrite:
        async with self._session() as session:
            row = await self._fetchone(
                session,
                "SELECT revision, status FROM reviews WHERE id = :rid FOR UPDATE",
                {"rid": review_id},
            )
            if row is None:
                raise KeyError(review_id)
            if int(row[0]) != expected_revision:
                return StatusWrite.CONFLICT
            if row[1] == status.value:
                return StatusWrite.UNCHANGED
            await session.execute(
                sa_text(
                    "UPDATE reviews SET status = :status, revision = revision + 1, "
                    "updated_at = NOW() WHERE id = :rid"
                ),
                {"status": status.value, "rid": review_id},
            )
            await session.commit()
        return StatusWrite.APPLIED


__all__ = ["SqlReviewStore"]
