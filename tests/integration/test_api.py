"""Integration smoke tests for the REST API (fake sessions via dependency override)."""
from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chat_sync.api.deps import get_presence, get_registry
from chat_sync.app import create_app
from chat_sync.config import settings
from chat_sync.domain.value_objects.enums import MentorshipStatus
from chat_sync.services.session_registry import SessionRegistry
from chat_sync.state.presence import PresenceStore
from tests.conftest import ME, MENTOR, SessionHarness, at, build_session, make_conversation, make_message


def _make_token(sub: str = ME, roles: list | None = None) -> str:
    return jwt.encode(
        {"sub": sub, "roles": roles or []},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(sub: str = ME) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(sub)}"}


@pytest.fixture
def harnesses() -> dict[str, SessionHarness]:
    return {}


@pytest.fixture
def app_with_sessions(harnesses):
    app = create_app()
    presence = PresenceStore()

    def factory(principal):
        h = build_session(
            principal,
            conversations=[
                make_conversation(conversation_id="c1", last_message_at=at(20), other_online=True),
                make_conversation(
                    conversation_id="c2",
                    other_id="user-other",
                    last_message_at=at(5),
                    status=MentorshipStatus.ENDED,
                    mentorship_end_reason="Completed",
                ),
            ],
            pages={
                "c1": [
                    make_message(message_id="m1", conversation_id="c1", created_at=at(10)),
                    make_message(message_id="m2", conversation_id="c1", created_at=at(20)),
                ],
                "c2": [],
            },
            presence=presence,
        )
        harnesses[principal.user_id] = h
        return h.session

    registry = SessionRegistry(factory)
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_presence] = lambda: presence
    return app, registry


@pytest.fixture
def client(app_with_sessions):
    app, registry = app_with_sessions
    with TestClient(app, raise_server_exceptions=False) as test_client:
        # The WebSocket route and shutdown read the registry from app state.
        app.state.registry = registry
        yield test_client


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_requires_bearer_token(client):
    resp = client.get("/api/v1/chat/conversations")
    assert resp.status_code in (401, 403)

    resp = client.get(
        "/api/v1/chat/conversations",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401


def test_list_conversations(client):
    resp = client.get("/api/v1/chat/conversations", headers=_auth())
    assert resp.status_code == 200
    data = resp.json()
    assert [c["id"] for c in data] == ["c1", "c2"]
    assert data[0]["can_write"] is True
    assert data[0]["is_other_online"] is True
    assert data[1]["can_write"] is False
    assert data[1]["mentorship_status"] == "ended"


def test_select_marks_history_read(client, harnesses):
    resp = client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    assert resp.status_code == 200
    data = resp.json()
    assert [m["id"] for m in data["messages"]] == ["m1", "m2"]
    assert data["conversation"]["is_active"] is True
    assert data["read_only_notice"] is None

    push = harnesses[ME].push
    assert push.emitted_as("messages:read") == [{"conversationId": "c1", "messageIds": ["m1", "m2"]}]


def test_select_unknown_conversation_is_404(client):
    resp = client.post("/api/v1/chat/conversations/nope/select", headers=_auth())
    assert resp.status_code == 404


def test_active_requires_selection(client):
    resp = client.get("/api/v1/chat/active", headers=_auth())
    assert resp.status_code == 404

    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.get("/api/v1/chat/active", headers=_auth())
    assert resp.status_code == 200
    assert resp.json()["conversation"]["id"] == "c1"


def test_send_message(client, harnesses):
    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.post(
        "/api/v1/chat/active/messages",
        json={"content": "Thanks for the review"},
        headers=_auth(),
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["content"] == "Thanks for the review"
    assert data["sender_id"] == ME
    assert data["pending"] is False
    assert harnesses[ME].api.calls_to("send_message") == [("c1", "Thanks for the review", None)]


def test_send_empty_message_is_rejected(client):
    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.post("/api/v1/chat/active/messages", json={"content": ""}, headers=_auth())
    assert resp.status_code == 422


def test_send_to_ended_mentorship_returns_notice(client, harnesses):
    client.post("/api/v1/chat/conversations/c2/select", headers=_auth())
    resp = client.post("/api/v1/chat/active/messages", json={"content": "hello?"}, headers=_auth())

    assert resp.status_code == 403
    body = resp.json()
    assert body["notice"]["reason"] == "Completed"
    assert body["notice"]["reconnect_path"] == "/mentorship/requests"
    assert harnesses[ME].api.calls_to("send_message") == []


def test_cannot_edit_other_participants_message(client):
    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.put("/api/v1/chat/messages/m1", json={"content": "mine now"}, headers=_auth())
    assert resp.status_code == 403


def test_upload_attachment(client, harnesses):
    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.post(
        "/api/v1/chat/active/attachments",
        files={"file": ("plan.pdf", b"%PDF-1.7", "application/pdf")},
        data={"caption": "my plan"},
        headers=_auth(),
    )
    assert resp.status_code == 201
    assert resp.json()["attachment_file_name"] == "plan.pdf"
    assert harnesses[ME].api.calls_to("upload_attachment") == [("c1", "plan.pdf", 8)]


def test_end_mentorship(client, harnesses):
    resp = client.post(
        "/api/v1/chat/conversations/c1/mentorship/end",
        json={"reason": "Goals achieved"},
        headers=_auth(),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["can_write"] is False
    assert data["mentorship_end_reason"] == "Goals achieved"
    assert harnesses[ME].mentorships.calls == [("end_mentorship", ("ms-c1", "Goals achieved"))]


def test_scroll_without_more_history(client):
    client.post("/api/v1/chat/conversations/c1/select", headers=_auth())
    resp = client.post(
        "/api/v1/chat/active/scroll",
        json={"scroll_top": 0, "scroll_height": 1200, "client_height": 600},
        headers=_auth(),
    )
    assert resp.status_code == 200
    assert resp.json() == {"loaded_older": False, "added": 0, "has_more": False}


def test_connectivity_and_one_session_per_user(client, harnesses):
    resp = client.get("/api/v1/chat/connectivity", headers=_auth())
    assert resp.status_code == 200
    assert resp.json()["polling"] is True

    client.get("/api/v1/chat/conversations", headers=_auth())
    client.get("/api/v1/chat/conversations", headers=_auth(MENTOR))
    assert sorted(harnesses) == [ME, MENTOR]


def test_ws_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/chat?token=bad"):
            pass


def test_ws_ping_and_errors(client):
    with client.websocket_connect(f"/ws/chat?token={_make_token()}") as ws:
        hello = ws.receive_json()
        assert hello["type"] == "connectivity.changed"
        assert hello["data"]["polling"] is True

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong", "data": {}}

        ws.send_json({"type": "launch"})
        assert ws.receive_json()["data"] == {"code": "unknown_type", "type": "launch"}

        ws.send_json({"type": "scroll", "data": {"scroll_top": -1}})
        assert ws.receive_json()["data"]["code"] == "invalid_payload"

        ws.send_json({"type": "scroll.rendered", "data": {"scroll_height": 900}})
        assert ws.receive_json() == {"type": "scroll.anchor", "data": {"scroll_top": None}}
