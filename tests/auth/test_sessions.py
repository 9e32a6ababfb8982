"""Login, refresh, logout and password change/reset tests."""

from httpx import AsyncClient
from sqlalchemy import update

from litpad.db.models import User
from litpad.email.tasks import EmailKind

PASSWORD = "Str0ngPassw0rd!"


async def _login(client: AsyncClient, email: str, password: str = PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


class TestLogin:
    async def test_login_stores_tokens(self, client: AsyncClient, user_factory, reload) -> None:
        user = await user_factory("alice")
        response = await _login(client, "ALICE@example.com")
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user_id"] == str(user.id)

        await reload(user)
        assert user.access == data["access"]
        assert user.refresh == data["refresh"]

    async def test_wrong_password(self, client: AsyncClient, user_factory) -> None:
        await user_factory("alice")
        response = await _login(client, "alice@example.com", "nope-nope")
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_credentials"

    async def test_unverified(self, client: AsyncClient, user_factory) -> None:
        await user_factory("alice", verified=False)
        response = await _login(client, "alice@example.com")
        assert response.status_code == 401
        assert response.json()["code"] == "unverified_user"


class TestTokenLifecycle:
    async def test_refresh_rotates(self, client: AsyncClient, user_factory) -> None:
        await user_factory("alice")
        tokens = (await _login(client, "alice@example.com")).json()["data"]

        response = await client.post("/api/v1/auth/refresh", json={"refresh": tokens["refresh"]})
        assert response.status_code == 201
        rotated = response.json()["data"]
        assert rotated["refresh"] != tokens["refresh"]

        stale = await client.post("/api/v1/auth/refresh", json={"refresh": tokens["refresh"]})
        assert stale.status_code == 401
        assert stale.json()["code"] == "invalid_token"

    async def test_logout_revokes_access(self, client: AsyncClient, user_factory, auth_headers) -> None:
        user = await user_factory("alice")
        headers = auth_headers(user)

        response = await client.get("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 200

        response = await client.get("/api/v1/notifications", headers=headers)
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_token"

    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/notifications", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Auth Token is Invalid or Expired!"


class TestUpdatePassword:
    async def test_update_password_revokes_session(
        self, client: AsyncClient, user_factory, auth_headers
    ) -> None:
        user = await user_factory("alice")
        headers = auth_headers(user)

        response = await client.put(
            "/api/v1/profiles/update-password",
            json={"old_password": PASSWORD, "password": "An0therPassword!"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password updated successfully"

        assert (await client.get("/api/v1/notifications", headers=headers)).status_code == 401
        assert (await _login(client, "alice@example.com", "An0therPassword!")).status_code == 201

    async def test_wrong_old_password(self, client: AsyncClient, user_factory, auth_headers) -> None:
        user = await user_factory("alice")
        response = await client.put(
            "/api/v1/profiles/update-password",
            json={"old_password": "not-my-password", "password": "An0therPassword!"},
            headers=auth_headers(user),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "password_does_not_match"

    async def test_same_password(self, client: AsyncClient, user_factory, auth_headers) -> None:
        user = await user_factory("alice")
        response = await client.put(
            "/api/v1/profiles/update-password",
            json={"old_password": PASSWORD, "password": PASSWORD},
            headers=auth_headers(user),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "same_password"


class TestPasswordReset:
    async def test_reset_by_otp(self, client: AsyncClient, user_factory, reload, queued_emails) -> None:
        user = await user_factory("alice")
        old_headers = {"Authorization": f"Bearer {user.access}"}

        response = await client.post("/api/v1/auth/send-password-reset-otp", json={"email": "alice@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Password otp sent"
        await reload(user)
        assert len(await queued_emails(EmailKind.RESET)) == 1
        otp = user.otp

        response = await client.post(
            "/api/v1/auth/set-new-password",
            json={"email": "alice@example.com", "otp": otp, "password": "BrandNewPass1!"},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successful"
        assert len(await queued_emails(EmailKind.RESET_SUCCESS)) == 1

        replay = await client.post(
            "/api/v1/auth/set-new-password",
            json={"email": "alice@example.com", "otp": otp, "password": "AnotherPass2!"},
        )
        assert replay.status_code == 404
        assert replay.json()["code"] == "incorrect_otp"
        assert len(await queued_emails(EmailKind.RESET_SUCCESS)) == 1

        assert (await client.get("/api/v1/notifications", headers=old_headers)).status_code == 401
        assert (await _login(client, "alice@example.com", "BrandNewPass1!")).status_code == 201

    async def test_reset_by_link(self, client: AsyncClient, user_factory, reload, queued_emails) -> None:
        user = await user_factory("alice")
        response = await client.post("/api/v1/auth/send-password-reset-link", json={"email": "alice@example.com"})
        assert response.status_code == 200

        await reload(user)
        assert user.token_string is not None and len(user.token_string) == 70
        emails = await queued_emails(EmailKind.RESET)
        assert emails[-1].token == user.token_string

        response = await client.post(
            "/api/v1/auth/set-new-password",
            json={"token_string": user.token_string, "password": "BrandNewPass1!"},
        )
        assert response.status_code == 200

        reused = await client.post(
            "/api/v1/auth/set-new-password",
            json={"token_string": user.token_string, "password": "YetAnotherPass1!"},
        )
        assert reused.status_code == 401

    async def test_social_login_cannot_reset(self, client: AsyncClient, user_factory, db_session) -> None:
        user = await user_factory("alice")
        await db_session.execute(
            update(User).where(User.id == user.id).values(social_login=True, password="!google-oauth")
        )
        await db_session.commit()

        response = await client.post("/api/v1/auth/send-password-reset-otp", json={"email": "alice@example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_auth"
