"""Registration, email verification and resend tests."""

from datetime import timedelta

from httpx import AsyncClient
from sqlalchemy import select

from litpad.db.base import utcnow
from litpad.db.models import Role, User
from litpad.email.tasks import EmailKind

REGISTER_BODY = {
    "email": "Alice@Example.com",
    "password": "Sup3rSecret!",
    "first_name": "Alice",
    "last_name": "Reader",
    "terms_agreement": True,
}


async def _user(db_session, email: str) -> User:
    await db_session.commit()
    result = await db_session.execute(
        select(User).where(User.email == email).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestRegister:
    async def test_register_queues_activation(self, client: AsyncClient, db_session, queued_emails) -> None:
        response = await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "success"
        assert body["message"] == "Registration successful"
        assert body["data"] == {"email": "alice@example.com"}

        user = await _user(db_session, "alice@example.com")
        assert not user.is_email_verified
        assert user.role == Role.READER
        assert user.username == "alice"
        assert user.otp is not None and 100000 <= user.otp <= 999999

        emails = await queued_emails(EmailKind.ACTIVATE)
        assert len(emails) == 1
        assert emails[0].user_id == user.id
        assert emails[0].token == str(user.otp)

    async def test_register_as_writer(self, client: AsyncClient, db_session) -> None:
        response = await client.post(
            "/api/v1/auth/register",
            json={**REGISTER_BODY, "email": "bob@example.com", "username": "Bob Writes", "account_type": "WRITER"},
        )
        assert response.status_code == 201
        user = await _user(db_session, "bob@example.com")
        assert user.role == Role.WRITER
        assert user.username == "bob-writes"

    async def test_duplicate_email(self, client: AsyncClient) -> None:
        await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        response = await client.post("/api/v1/auth/register", json={**REGISTER_BODY, "email": "alice@EXAMPLE.com"})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "invalid_entry"
        assert "email" in body["data"]

    async def test_punctuation_only_username(self, client: AsyncClient, db_session) -> None:
        response = await client.post("/api/v1/auth/register", json={**REGISTER_BODY, "username": "!!"})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "invalid_entry"
        assert body["data"] == {"username": "Username must contain letters or digits"}

        await db_session.commit()
        assert (await db_session.execute(select(User.id))).first() is None

    async def test_duplicate_username_after_slugging(self, client: AsyncClient) -> None:
        await client.post(
            "/api/v1/auth/register",
            json={**REGISTER_BODY, "email": "bob@example.com", "username": "Bob Writes"},
        )
        response = await client.post("/api/v1/auth/register", json={**REGISTER_BODY, "username": "bob writes!"})
        assert response.status_code == 422
        assert response.json()["data"] == {"username": "Username already taken!"}

    async def test_short_password(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/auth/register", json={**REGISTER_BODY, "password": "short"})
        assert response.status_code == 422
        assert "password" in response.json()["data"]


class TestVerifyEmail:
    async def test_verify_then_welcome(self, client: AsyncClient, db_session, queued_emails) -> None:
        await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        user = await _user(db_session, "alice@example.com")

        response = await client.post(
            "/api/v1/auth/verify-email", json={"email": "alice@example.com", "otp": user.otp}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Account verification successful"

        user = await _user(db_session, "alice@example.com")
        assert user.is_email_verified
        assert user.otp is None
        assert len(await queued_emails(EmailKind.WELCOME)) == 1

    async def test_already_verified(self, client: AsyncClient, user_factory) -> None:
        await user_factory("carol")
        response = await client.post(
            "/api/v1/auth/verify-email", json={"email": "carol@example.com", "otp": 123456}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Email already verified"

    async def test_wrong_otp(self, client: AsyncClient, db_session) -> None:
        await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        user = await _user(db_session, "alice@example.com")
        wrong = 100000 if user.otp != 100000 else 100001

        response = await client.post("/api/v1/auth/verify-email", json={"email": "alice@example.com", "otp": wrong})
        assert response.status_code == 404
        assert response.json()["code"] == "incorrect_otp"

    async def test_expired_otp_regardless_of_value(self, client: AsyncClient, db_session) -> None:
        await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        user = await _user(db_session, "alice@example.com")
        otp = user.otp
        user.otp_expiry = utcnow() - timedelta(seconds=1)
        await db_session.commit()

        response = await client.post("/api/v1/auth/verify-email", json={"email": "alice@example.com", "otp": otp})
        assert response.status_code == 400
        assert response.json()["code"] == "expired_otp"

    async def test_unknown_email(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/auth/verify-email", json={"email": "ghost@example.com", "otp": 123456}
        )
        assert response.status_code == 404
        assert response.json()["code"] == "incorrect_email"


class TestResendVerification:
    async def test_resend_replaces_otp(self, client: AsyncClient, db_session, queued_emails) -> None:
        await client.post("/api/v1/auth/register", json=REGISTER_BODY)
        response = await client.post("/api/v1/auth/resend-verification-email", json={"email": "alice@example.com"})
        assert response.status_code == 200

        user = await _user(db_session, "alice@example.com")
        emails = await queued_emails(EmailKind.ACTIVATE)
        assert len(emails) == 2
        assert emails[-1].token == str(user.otp)
