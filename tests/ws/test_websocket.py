"""End-to-end tests for the notification socket."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from litpad.auth.password import hash_password
from litpad.auth.service import issue_tokens
from litpad.database import get_session_factory
from litpad.db.models import Notification, NotificationType, Role, User
from litpad.main import create_app
from litpad.social.notification_service import create_notification

HUB = "/api/v1/ws/notifications/"
SECRET = "test-socket-secret"


async def _make_user(username: str, role: Role = Role.READER) -> tuple[uuid.UUID, str]:
    async with get_session_factory()() as db:
        user = User(
            email=f"{username}@example.com",
            username=username,
            password=hash_password("irrelevant-password"),
            role=role,
            is_email_verified=True,
        )
        db.add(user)
        await db.flush()
        access, _refresh = issue_tokens(user)
        await db.commit()
        return user.id, access


async def _make_notification(receiver_id: uuid.UUID) -> uuid.UUID:
    async with get_session_factory()() as db:
        note = await create_notification(db, receiver_id=receiver_id, ntype=NotificationType.VOTE, text="voted")
        await db.commit()
        return note.id


async def _notification_exists(notification_id: uuid.UUID) -> bool:
    async with get_session_factory()() as db:
        result = await db.execute(select(Notification.id).where(Notification.id == notification_id))
        return result.first() is not None


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestRouting:
    def test_envelope_reaches_only_its_receiver(self, client: TestClient) -> None:
        bob_id, bob_token = client.portal.call(_make_user, "bob", Role.WRITER)
        alice_id, alice_token = client.portal.call(_make_user, "alice")

        with (
            client.websocket_connect(HUB, headers=_bearer(bob_token)) as w1,
            client.websocket_connect(HUB, headers=_bearer(alice_token)) as w2,
            client.websocket_connect(HUB, headers={"Authorization": SECRET}) as broadcaster,
        ):
            broadcaster.send_json({"status": "CREATED", "receiver_id": str(bob_id), "text": "for bob"})
            message = w1.receive_json()
            assert message["text"] == "for bob"
            assert message["receiver_id"] == str(bob_id)

            # W2's first frame is its own envelope, so bob's never reached it
            broadcaster.send_json({"status": "CREATED", "receiver_id": str(alice_id), "text": "for alice"})
            assert w2.receive_json()["text"] == "for alice"

    def test_deleted_envelope_removes_row(self, client: TestClient) -> None:
        bob_id, bob_token = client.portal.call(_make_user, "bob", Role.WRITER)
        note_id = client.portal.call(_make_notification, bob_id)

        with (
            client.websocket_connect(HUB, headers=_bearer(bob_token)) as w1,
            client.websocket_connect(HUB, headers={"Authorization": f"Bearer {SECRET}"}) as broadcaster,
        ):
            broadcaster.send_json({"status": "DELETED", "id": str(note_id), "receiver_id": str(bob_id)})
            assert w1.receive_json() == {"status": "DELETED", "id": str(note_id), "receiver_id": str(bob_id)}

            # The broadcaster loop is sequential: once this arrives, the delete has run
            broadcaster.send_json({"status": "CREATED", "receiver_id": str(bob_id), "text": "sync"})
            assert w1.receive_json()["text"] == "sync"

        assert not client.portal.call(_notification_exists, note_id)

    def test_invalid_envelope_keeps_broadcaster(self, client: TestClient) -> None:
        bob_id, bob_token = client.portal.call(_make_user, "bob", Role.WRITER)

        with (
            client.websocket_connect(HUB, headers=_bearer(bob_token)) as w1,
            client.websocket_connect(HUB, headers={"Authorization": SECRET}) as broadcaster,
        ):
            broadcaster.send_text("not json")
            error = broadcaster.receive_json()
            assert error["status"] == "failure"
            assert error["code"] == 4220
            assert error["type"] == "invalid_entry"

            broadcaster.send_json({"status": "CREATED", "receiver_id": str(bob_id), "text": "still here"})
            assert w1.receive_json()["text"] == "still here"


class TestAuth:
    def test_missing_credentials(self, client: TestClient) -> None:
        with client.websocket_connect(HUB) as ws:
            error = ws.receive_json()
            assert error["code"] == 4001
            assert error["type"] == "unauthorized_user"
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_json()
        assert exc.value.code == 4001

    def test_bad_token(self, client: TestClient) -> None:
        with client.websocket_connect(HUB, headers=_bearer("garbage")) as ws:
            error = ws.receive_json()
        assert error["code"] == 4001
        assert error["message"] == "Auth Token is Invalid or Expired!"

    def test_user_socket_cannot_send(self, client: TestClient) -> None:
        _bob_id, bob_token = client.portal.call(_make_user, "bob", Role.WRITER)
        with client.websocket_connect(HUB, headers=_bearer(bob_token)) as ws:
            ws.send_json({"status": "CREATED", "receiver_id": str(uuid.uuid4())})
            error = ws.receive_json()
            assert error["code"] == 4001
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()
