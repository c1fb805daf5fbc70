# ruff: noqa: S101
"""Tests for reviewer token issuance and validation."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from signoff.errors import AuthError
from signoff.models import ParticipantStatus, utcnow
from signoff.review import TokenAuthenticator, hash_secret


def test_hash_secret_is_sha256_hex() -> None:
    digest = hash_secret("abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_issue_uses_256_bit_secret(store) -> None:
    auth = TokenAuthenticator(store)
    issued = auth.issue(participant_id=uuid4(), ttl=timedelta(days=7))
    assert len(issued.secret) == 64
    assert issued.token.secret_hash == hash_secret(issued.secret)
    assert issued.token.secret_hash != issued.secret
    assert issued.token.expires_at - issued.token.created_at == timedelta(days=7)


async def test_initiate_stores_only_hashes(store, start_review) -> None:
    result = await start_review()
    raw = {t.token for t in result.participant_tokens}
    assert raw.isdisjoint(store.tokens)
    assert {hash_secret(t) for t in raw} == set(store.tokens)


async def test_validate_resolves_latest_version_and_marks_viewed(
    store, orchestrator, start_review
) -> None:
    result = await start_review()
    first = result.participant_tokens[0]
    v2 = (await orchestrator.add_review_version(result.review_id, "c1")).unwrap()

    context = await orchestrator.tokens.validate(first.token)

    assert context.review_id == result.review_id
    assert context.participant_id == first.participant_id
    assert context.review_version_id == v2.id
    assert context.reviewer_email == first.email
    assert store.participants[first.participant_id].status is ParticipantStatus.VIEWED


async def test_tokens_are_reusable_until_expiry(orchestrator, start_review) -> None:
    token = (await start_review()).participant_tokens[0].token
    await orchestrator.tokens.validate(token)
    await orchestrator.tokens.validate(token)


async def test_unknown_token_rejected(orchestrator) -> None:
    with pytest.raises(AuthError, match="Link invalid or expired."):
        await orchestrator.tokens.validate("not-a-token")
    with pytest.raises(AuthError):
        await orchestrator.tokens.validate("   ")


async def test_expired_token_rejected_without_status_change(
    store, orchestrator, start_review
) -> None:
    entry = (await start_review()).participant_tokens[0]
    stored = store.tokens[hash_secret(entry.token)]
    stored.expires_at = utcnow() - timedelta(seconds=1)
    revision = store.reviews[stored_review(store, entry.participant_id)].revision

    result = await orchestrator.validate_token(entry.token)

    assert not result.success
    assert result.error_kind.value == "auth"
    assert store.participants[entry.participant_id].status is ParticipantStatus.INVITED
    assert store.reviews[stored_review(store, entry.participant_id)].revision == revision


async def test_consume_is_single_use(store, orchestrator, start_review) -> None:
    token = (await start_review()).participant_tokens[0].token

    await orchestrator.tokens.validate(token, consume=True)

    assert store.tokens[hash_secret(token)].used_at is not None
    with pytest.raises(AuthError):
        await orchestrator.tokens.validate(token, consume=True)
    with pytest.raises(AuthError):
        await orchestrator.tokens.validate(token)


async def test_concurrent_consume_admits_exactly_one(orchestrator, start_review) -> None:
    token = (await start_review()).participant_tokens[0].token
    results = await asyncio.gather(
        *(orchestrator.validate_token(token, consume=True) for _ in range(5))
    )
    assert sum(r.success for r in results) == 1


def stored_review(store, participant_id):
    return store.participants[participant_id].review_id
