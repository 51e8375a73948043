"""Integration tests for the REST and WebSocket surface over an in-memory UoW."""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from social_chat.app import create_app
from social_chat.config import settings
from social_chat.services import message_service
from tests.conftest import ALICE, BOB, CAROL, FakeUoW, fake_uow_factory, make_group, make_individual


def _make_token(identity=ALICE, *, expires_in: timedelta = timedelta(hours=1)) -> str:
    return jwt.encode(
        {
            "sub": identity.id,
            "username": identity.username,
            "exp": datetime.now(timezone.utc) + expires_in,
        },
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _auth(identity=ALICE) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(identity)}"}


@pytest.fixture
def client(db):
    app = create_app(uow_factory=fake_uow_factory(db))
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_create_chat_then_reuse(client, db):
    resp = client.post("/api/chats/create", json={"userId": BOB.id}, headers=_auth())
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Chat created successfully"
    chat = body["chat"]
    assert chat["chatType"] == "individual"
    assert [p["username"] for p in chat["participants"]] == ["alice", "bob"]
    assert chat["messages"] == []
    assert chat["lastMessage"] is None

    again = client.post("/api/chats/create", json={"userId": ALICE.id}, headers=_auth(BOB))
    assert again.status_code == 200
    assert again.json()["message"] == "Chat already exists"
    assert again.json()["chat"]["id"] == chat["id"]
    assert len(db.conversations) == 1


def test_create_chat_with_self(client):
    resp = client.post("/api/chats/create", json={"userId": ALICE.id}, headers=_auth())
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_create_chat_missing_user_id(client):
    resp = client.post("/api/chats/create", json={}, headers=_auth())
    assert resp.status_code == 400


def test_create_chat_unknown_peer(client):
    resp = client.post("/api/chats/create", json={"userId": "u-ghost"}, headers=_auth())
    assert resp.status_code == 404


def test_missing_token(client):
    resp = client.get("/api/chats/user-chats")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "User not authenticated"}


def test_expired_token(client):
    token = _make_token(expires_in=timedelta(minutes=-5))
    resp = client.get("/api/chats/user-chats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Token expired"


def test_token_without_exp_rejected(client):
    token = jwt.encode({"sub": ALICE.id}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    resp = client.get("/api/chats/user-chats", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_create_group(client):
    resp = client.post(
        "/api/chats/create-group",
        json={"groupName": "trip", "participants": [BOB.id, CAROL.id]},
        headers=_auth(),
    )
    assert resp.status_code == 201
    chat = resp.json()
    assert chat["chatType"] == "group"
    assert chat["groupName"] == "trip"
    assert chat["groupAdmin"]["id"] == ALICE.id
    assert [p["id"] for p in chat["participants"]] == [BOB.id, CAROL.id, ALICE.id]


def test_create_group_too_small(client):
    resp = client.post(
        "/api/chats/create-group",
        json={"groupName": "solo", "participants": []},
        headers=_auth(),
    )
    assert resp.status_code == 400


def test_get_chat_with_messages(client, db):
    conv = db.add_conversation(make_individual(ALICE.id, BOB.id))
    client.portal.call(message_service.append_message, conv.id, BOB.id, "hi", FakeUoW(db))

    resp = client.get(f"/api/chats/{conv.id}", headers=_auth())
    assert resp.status_code == 200
    [msg] = resp.json()["messages"]
    assert msg["content"] == "hi"
    assert msg["seq"] == 1
    assert msg["sender"]["username"] == "bob"
    assert msg["readBy"] == []


def test_get_chat_forbidden_and_missing(client, db):
    conv = db.add_conversation(make_individual(BOB.id, CAROL.id))

    forbidden = client.get(f"/api/chats/{conv.id}", headers=_auth())
    assert forbidden.status_code == 403
    assert forbidden.json() == {"success": False, "message": "Not authorized to access this chat"}

    missing = client.get(f"/api/chats/{uuid.uuid4()}", headers=_auth())
    assert missing.status_code == 404


def test_user_chats(client, db):
    db.add_conversation(make_individual(ALICE.id, BOB.id))
    db.add_conversation(make_individual(BOB.id, CAROL.id))

    resp = client.get("/api/chats/user-chats", headers=_auth())
    assert resp.status_code == 200
    assert len(resp.json()) == 1


def test_add_participants(client, db):
    conv = db.add_conversation(make_group([BOB.id, ALICE.id]))

    denied = client.post(
        f"/api/chats/{conv.id}/add-participants",
        json={"participants": [CAROL.id]},
        headers=_auth(BOB),
    )
    assert denied.status_code == 403
    assert denied.json()["message"] == "Only admin can add participants"

    resp = client.post(
        f"/api/chats/{conv.id}/add-participants",
        json={"participants": [CAROL.id]},
        headers=_auth(),
    )
    assert resp.status_code == 200
    assert [p["id"] for p in resp.json()["participants"]] == [BOB.id, ALICE.id, CAROL.id]


def test_mark_read(client, db):
    conv = db.add_conversation(make_individual(ALICE.id, BOB.id))
    client.portal.call(message_service.append_message, conv.id, BOB.id, "hi", FakeUoW(db))

    resp = client.post(f"/api/chats/{conv.id}/mark-read", headers=_auth())
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Messages marked as read"}
    assert db.log(conv.id)[0].read_by == (ALICE.id,)

    again = client.post(f"/api/chats/{conv.id}/mark-read", json={"messageIds": []}, headers=_auth())
    assert again.status_code == 200
    assert db.log(conv.id)[0].read_by == (ALICE.id,)


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/chat?token=garbage"):
            pass
    assert exc.value.code == 4001


def test_websocket_rejects_missing_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/chat"):
            pass
    assert exc.value.code == 4001


def test_websocket_message_flow(client, db):
    conv = db.add_conversation(make_individual(ALICE.id, BOB.id))

    with client.websocket_connect(f"/ws/chat?token={_make_token(ALICE)}") as alice:
        assert alice.receive_json() == {"type": "activeUsers", "data": [ALICE.id]}

        with client.websocket_connect(f"/ws/chat?token={_make_token(BOB)}") as bob:
            assert bob.receive_json() == {"type": "activeUsers", "data": [ALICE.id, BOB.id]}
            assert alice.receive_json()["data"] == [ALICE.id, BOB.id]

            alice.send_json({"type": "ping"})
            assert alice.receive_json() == {"type": "pong", "data": {}}

            alice.send_json({"type": "join_chat", "data": {"chatId": str(conv.id)}})
            alice.send_json(
                {"type": "sendMessage", "data": {"chatId": str(conv.id), "content": "hello"}}
            )

            echo = alice.receive_json()
            assert echo["type"] == "message"
            assert echo["data"]["message"]["content"] == "hello"
            assert echo["data"]["message"]["seq"] == 1

            update = bob.receive_json()
            assert update["type"] == "chatUpdate"
            assert update["data"]["lastMessage"] == "hello"

        assert alice.receive_json() == {"type": "activeUsers", "data": [ALICE.id]}

    assert len(db.log(conv.id)) == 1
