# src/signoff/review/tokens.py
"""Opaque access tokens for external reviewers.

A token is a random hex secret handed to one participant.  Only its
SHA-256 digest is stored, so a leaked table cannot be replayed.  Tokens are
reusable until they expire; callers that need single-use semantics pass
``consume=True`` and the store marks the token used in the same step that
checks it.
"""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import NoReturn
from uuid import UUID

from signoff.config import config
from signoff.core.logs import EventType, Priority, get_event_logger
from signoff.errors import AuthError, NotFoundError
from signoff.models import ParticipantStatus, ReviewToken, TokenContext, utcnow
from signoff.store import ReviewStore, TokenCheck

from .status import VIEWABLE_FROM

event_logger = get_event_logger()

INVALID_TOKEN_MESSAGE = "Link invalid or expired."


def hash_secret(secret: str) -> str:
    """Return the hex SHA-256 digest used to look up ``secret``."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class IssuedToken:
    """Raw secret plus the record to persist for it."""

    secret: str
    token: ReviewToken


class TokenAuthenticator:
    def __init__(
        self,
        store: ReviewStore,
        *,
        token_bytes: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.token_bytes = token_bytes or config.review.token_bytes
        self._now = clock

    def issue(self, participant_id: UUID, ttl: timedelta) -> IssuedToken:
        """Create a new secret for ``participant_id`` valid for ``ttl``.

        Nothing is persisted here; the caller stores ``token`` together with
        the rest of its transaction.
        """
        secret = secrets.token_hex(self.token_bytes)
        now = self._now()
        token = ReviewToken(
            participant_id=participant_id,
            secret_hash=hash_secret(secret),
            expires_at=now + ttl,
            created_at=now,
        )
        event_logger.debug(
            "Issued review token",
            event_type=EventType.TOKEN_ISSUED,
            participant_id=participant_id,
            expires_at=token.expires_at.isoformat(),
        )
        return IssuedToken(secret=secret, token=token)

    async def validate(self, secret: str, *, consume: bool = False) -> TokenContext:
        """Resolve ``secret`` to the participant and latest review version.

        Raises :class:`AuthError` when the token is unknown, expired or
        already used.  A participant still at ``invited`` moves to
        ``viewed``.
        """
        if not secret or not secret.strip():
            self._reject("empty")
        digest = hash_secret(secret.strip())
        now = self._now()

        if consume:
            outcome = await self.store.consume_token(digest, now)
            if outcome.outcome is not TokenCheck.CONSUMED or outcome.token is None:
                self._reject(outcome.outcome.value)
            token = outcome.token
        else:
            found = await self.store.find_token(digest)
            if found is None:
                self._reject(TokenCheck.NOT_FOUND.value)
            elif found.used_at is not None:
                self._reject(TokenCheck.ALREADY_USED.value, found.participant_id)
            elif found.expires_at <= now:
                self._reject(TokenCheck.EXPIRED.value, found.participant_id)
            token = found

        context = await self._resolve(token)
        await self.store.advance_participant_status(
            context.participant_id, VIEWABLE_FROM, ParticipantStatus.VIEWED
        )
        event_logger.debug(
            "Review token accepted",
            event_type=EventType.TOKEN_VALIDATED,
            review_id=context.review_id,
            participant_id=context.participant_id,
            consumed=consume,
        )
        return context

    async def _resolve(self, token: ReviewToken) -> TokenContext:
        participant = await self.store.get_participant(token.participant_id)
        if participant is None:
            raise NotFoundError("Participant for token no longer exists")
        version = await self.store.get_latest_version(participant.review_id)
        if version is None:
            raise NotFoundError("Review has no versions")
        return TokenContext(
            token_id=token.id,
            review_id=participant.review_id,
            participant_id=participant.id,
            review_version_id=version.id,
            reviewer_email=participant.email,
        )

    def _reject(self, reason: str, participant_id: UUID | None = None) -> NoReturn:
        event_logger.warning(
            f"Review token rejected: {reason}",
            event_type=EventType.TOKEN_REJECTED,
            priority=Priority.HIGH,
            participant_id=participant_id,
            reason=reason,
        )
        raise AuthError(INVALID_TOKEN_MESSAGE)


__all__ = [
    "TokenAuthenticator",
    "IssuedToken",
    "hash_secret",
    "INVALID_TOKEN_MESSAGE",
]
