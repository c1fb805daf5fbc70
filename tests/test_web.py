# ruff: noqa: S101
"""Tests for the HTTP surface."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from signoff.config import config
from signoff.models import ParticipantStatus, ReviewStatus, utcnow
from signoff.review import ReviewOrchestrator, hash_secret
from signoff.store import MemoryReviewStore
from signoff.web import create_app
from signoff.web.websocket import WebSocketManager

AUTH = {"Authorization": "Bearer test-token", "X-Client-Id": "c1", "X-User-Id": "u1"}


@pytest.fixture
def web_store() -> MemoryReviewStore:
    return MemoryReviewStore()


@pytest.fixture
def client(web_store: MemoryReviewStore, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(config.system, "web_token", "test-token")
    monkeypatch.setattr(config.system, "disable_auth", False)
    monkeypatch.setattr(config.review, "single_use_approval", False)
    manager = WebSocketManager()
    app = create_app(ReviewOrchestrator(web_store, manager), manager=manager)
    with TestClient(app) as test_client:
        yield test_client


def _start(client: TestClient, emails: list[str] | None = None) -> dict:
    response = client.post(
        "/api/reviews",
        json={"assetId": "a1", "reviewerEmails": emails or ["ana@example.com", "ben@example.com"]},
        headers=AUTH,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_internal_routes_require_token(client: TestClient) -> None:
    response = client.post(
        "/api/reviews",
        json={"assetId": "a1", "reviewerEmails": ["x@example.com"]},
        headers={"X-Client-Id": "c1"},
    )
    assert response.status_code == 401

    response = client.get(
        "/api/assets/a1/reviews", headers={**AUTH, "Authorization": "Bearer nope"}
    )
    assert response.status_code == 401


def test_disable_auth(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config.system, "disable_auth", True)
    response = client.get("/api/assets/a1/reviews", headers={"X-Client-Id": "c1"})
    assert response.status_code == 200
    assert response.json() == []


def test_initiate_validation_is_400(client: TestClient) -> None:
    response = client.post(
        "/api/reviews", json={"assetId": "a1", "reviewerEmails": []}, headers=AUTH
    )
    assert response.status_code == 400
    assert "reviewerEmail" in response.json()["detail"]


def test_reviewer_flow(client: TestClient, web_store: MemoryReviewStore) -> None:
    started = _start(client)
    ana, ben = started["participant_tokens"]

    portal = client.get(f"/api/review/{ana['token']}")
    assert portal.status_code == 200
    body = portal.json()
    assert body["review_id"] == started["review_id"]
    assert body["participant_status"] == "viewed"
    assert body["asset_snapshot"] is None

    comment = client.post(
        f"/api/review/{ana['token']}/comments", json={"content": "Needs subtitles"}
    )
    assert comment.status_code == 201
    assert "comment_id" in comment.json()

    blank = client.post(f"/api/review/{ana['token']}/comments", json={"content": " "})
    assert blank.status_code == 400

    for entry in (ana, ben):
        response = client.post(
            f"/api/review/{entry['token']}/approve", json={"action": "approved"}
        )
        assert response.status_code == 200
    assert response.json()["review_status"] == "approved"

    history = client.get("/api/assets/a1/reviews", headers=AUTH).json()
    assert history[0]["status"] == ReviewStatus.APPROVED.value
    assert history[0]["comments_count"] == 1


def test_bad_action_is_400(client: TestClient) -> None:
    token = _start(client)["participant_tokens"][0]["token"]
    response = client.post(f"/api/review/{token}/approve", json={"action": "maybe"})
    assert response.status_code == 400


def test_invalid_and_expired_tokens_are_403(
    client: TestClient, web_store: MemoryReviewStore
) -> None:
    response = client.get("/api/review/deadbeef")
    assert response.status_code == 403
    assert response.json()["detail"] == "Link invalid or expired."

    entry = _start(client)["participant_tokens"][0]
    web_store.tokens[hash_secret(entry["token"])].expires_at = utcnow() - timedelta(minutes=1)

    response = client.get(f"/api/review/{entry['token']}")
    assert response.status_code == 403
    participant = next(iter(web_store.participants.values()))
    assert participant.status is ParticipantStatus.INVITED


def test_single_use_approval(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config.review, "single_use_approval", True)
    token = _start(client, ["solo@example.com"])["participant_tokens"][0]["token"]

    first = client.post(f"/api/review/{token}/approve", json={"action": "rejected"})
    second = client.post(f"/api/review/{token}/approve", json={"action": "approved"})

    assert first.status_code == 200
    assert second.status_code == 403


def test_bad_action_does_not_spend_single_use_token(
    client: TestClient, web_store: MemoryReviewStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(config.review, "single_use_approval", True)
    token = _start(client, ["solo@example.com"])["participant_tokens"][0]["token"]

    typo = client.post(f"/api/review/{token}/approve", json={"action": "aproved"})
    assert typo.status_code == 400
    assert web_store.tokens[hash_secret(token)].used_at is None
    assert web_store.approvals == {}

    fixed = client.post(f"/api/review/{token}/approve", json={"action": "approved"})
    assert fixed.status_code == 200
    assert fixed.json()["review_status"] == "approved"
    assert web_store.tokens[hash_secret(token)].used_at is not None


def test_add_version_route(client: TestClient) -> None:
    review_id = _start(client)["review_id"]

    response = client.post(f"/api/reviews/{review_id}/versions", headers=AUTH)
    assert response.status_code == 201
    assert response.json()["version_number"] == 2

    response = client.post(
        f"/api/reviews/{review_id}/versions", headers={**AUTH, "X-Client-Id": "c9"}
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Not found."


def test_websocket_receives_events(client: TestClient) -> None:
    with client.websocket_connect("/ws/notifications") as ws:
        _start(client, ["solo@example.com"])
        message = ws.receive_json()
    assert message["type"] == "review_event"
    assert message["recipient_email"] == "solo@example.com"
