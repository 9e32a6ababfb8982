"""Profile and follow toggle tests."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from litpad.auth.service import get_user_for_update
from litpad.db.models import Notification, NotificationType, Role, user_followers
from litpad.users.service import toggle_follow


class TestProfile:
    async def test_get_profile(self, client: AsyncClient, user_factory) -> None:
        await user_factory("wendy", role=Role.WRITER)
        response = await client.get("/api/v1/profiles/profile/wendy")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "wendy"
        assert data["role"] == "WRITER"
        assert data["followers_count"] == 0
        assert "email" not in data

    async def test_unknown_profile(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/profiles/profile/nobody")
        assert response.status_code == 404
        assert response.json()["code"] == "non_existent"


class TestFollow:
    async def test_follow_then_unfollow(
        self, client: AsyncClient, user_factory, auth_headers, db_session
    ) -> None:
        reader = await user_factory("rita")
        writer = await user_factory("wendy", role=Role.WRITER)

        response = await client.get("/api/v1/profiles/profile/wendy/follow", headers=auth_headers(reader))
        assert response.status_code == 200
        assert response.json()["message"] == "User followed successfully"
        assert response.json()["data"] == {"following": True}

        await db_session.commit()
        notes = (
            await db_session.execute(select(Notification).where(Notification.receiver_id == writer.id))
        ).scalars().all()
        assert len(notes) == 1
        assert notes[0].ntype == NotificationType.FOLLOWING
        assert notes[0].sender_id == reader.id
        assert notes[0].text == "Rita started following you."

        followers = await client.get("/api/v1/profiles/followers", headers=auth_headers(writer))
        assert [u["username"] for u in followers.json()["data"]["users"]] == ["rita"]
        following = await client.get("/api/v1/profiles/following", headers=auth_headers(reader))
        assert [u["username"] for u in following.json()["data"]["users"]] == ["wendy"]

        response = await client.get("/api/v1/profiles/profile/wendy/follow", headers=auth_headers(reader))
        assert response.json()["message"] == "User unfollowed successfully"
        profile = await client.get("/api/v1/profiles/profile/wendy")
        assert profile.json()["data"]["followers_count"] == 0

    async def test_cannot_follow_reader(self, client: AsyncClient, user_factory, auth_headers) -> None:
        reader = await user_factory("rita")
        await user_factory("roger")
        response = await client.get("/api/v1/profiles/profile/roger/follow", headers=auth_headers(reader))
        assert response.status_code == 403
        assert response.json()["code"] == "not_allowed"

    async def test_cannot_follow_unverified_writer(
        self, client: AsyncClient, user_factory, auth_headers, db_session
    ) -> None:
        reader = await user_factory("rita")
        writer = await user_factory("wendy", role=Role.WRITER, verified=False)
        response = await client.get("/api/v1/profiles/profile/wendy/follow", headers=auth_headers(reader))
        assert response.status_code == 404
        assert response.json()["code"] == "non_existent"

        await db_session.commit()
        notes = await db_session.execute(select(Notification.id).where(Notification.receiver_id == writer.id))
        assert notes.first() is None

    async def test_cannot_follow_self(self, client: AsyncClient, user_factory, auth_headers) -> None:
        writer = await user_factory("wendy", role=Role.WRITER)
        response = await client.get("/api/v1/profiles/profile/wendy/follow", headers=auth_headers(writer))
        assert response.status_code == 400


async def test_toggle_locks_follower_row(db_session, user_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Each toggle reads and writes the edge under the follower's row lock."""
    reader = await user_factory("rita")
    writer = await user_factory("wendy", role=Role.WRITER)
    locked = []

    async def recording_lock(db, user_id):
        locked.append(user_id)
        return await get_user_for_update(db, user_id)

    monkeypatch.setattr("litpad.users.service.get_user_for_update", recording_lock)

    following, notification = await toggle_follow(db_session, reader, writer)
    assert following is True
    assert notification is not None
    following, notification = await toggle_follow(db_session, reader, writer)
    assert following is False
    assert notification is None
    assert locked == [reader.id, reader.id]

    await db_session.commit()
    edges = await db_session.execute(select(user_followers))
    assert edges.all() == []
