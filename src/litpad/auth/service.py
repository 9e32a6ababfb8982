"""
Identity store and authentication business logic.

Handles user lookup and creation, one-time codes, session tokens and the
password flows. Post-action emails are queued in the same transaction as
the change that triggers them.
"""

from __future__ import annotations

import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import jwt
import structlog
from sqlalchemy import func, select

from litpad.auth.jwt import create_access_token, create_refresh_token, decode_token
from litpad.auth.password import hash_password, verify_password
from litpad.config import get_settings
from litpad.db.base import utcnow
from litpad.db.models import Role, User, slugify
from litpad.email.tasks import EmailKind, queue_email_quietly
from litpad.exceptions import (
    EXPIRED_OTP,
    INCORRECT_EMAIL,
    INCORRECT_OTP,
    INVALID_AUTH,
    INVALID_CREDENTIALS,
    INVALID_TOKEN,
    PASSWORD_DOES_NOT_MATCH,
    SAME_PASSWORD,
    UNVERIFIED_USER,
    NotFoundError,
    RequestError,
    UnauthorizedError,
    ValidationFailedError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

TOKEN_STRING_LENGTH = 70
_USERNAME_SOURCE = re.compile(r"@.*$")


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(
    db: AsyncSession,
    username: str,
    *,
    role: Role | None = None,
    verified_only: bool = False,
) -> User | None:
    """Fetch a user by username, optionally restricted to a role."""
    stmt = select(User).where(User.username == username)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if verified_only:
        stmt = stmt.where(User.is_email_verified.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_for_update(db: AsyncSession, user_id: uuid.UUID) -> User:
    """Load a user row under a row lock for a read-modify-write."""
    result = await db.execute(
        select(User).where(User.id == user_id).with_for_update().execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def unique_username(db: AsyncSession, source: str) -> str:
    """Slug ``source`` and append a short suffix until it is free."""
    base = slugify(source) or "user"
    candidate = base
    while await get_user_by_username(db, candidate) is not None:
        candidate = f"{base}-{secrets.token_hex(3)}"
    return candidate


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------


def is_otp_expired(expiry: datetime | None) -> bool:
    """True when there is no expiry or it has passed."""
    return expiry is None or utcnow() > expiry


def generate_otp(user: User) -> int:
    """Overwrite any outstanding code with a fresh 6-digit OTP."""
    user.otp = secrets.randbelow(900_000) + 100_000
    user.otp_expiry = utcnow() + timedelta(seconds=get_settings().email_otp_expire_seconds)
    return user.otp


def generate_token_string(user: User) -> str:
    """Overwrite any outstanding link token with a fresh 70-char URL-safe string."""
    user.token_string = secrets.token_urlsafe(64)[:TOKEN_STRING_LENGTH]
    user.token_expiry = utcnow() + timedelta(seconds=get_settings().email_otp_expire_seconds)
    return user.token_string


def _consume_otp(user: User, otp: int) -> None:
    """Check and burn the user's OTP.

    Raises:
        NotFoundError: ``incorrect_otp`` when the code doesn't match.
        RequestError: ``expired_otp`` when the code is past its expiry.
    """
    if user.otp is None:
        raise NotFoundError("Incorrect Otp", code=INCORRECT_OTP)
    if is_otp_expired(user.otp_expiry):
        raise RequestError("Expired Otp", code=EXPIRED_OTP)
    if not secrets.compare_digest(str(user.otp), str(otp)):
        raise NotFoundError("Incorrect Otp", code=INCORRECT_OTP)
    user.otp = None
    user.otp_expiry = None


# ---------------------------------------------------------------------------
# Registration and verification
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    email: str,
    password: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    username: str | None = None,
    role: Role = Role.READER,
    terms_agreement: bool = False,
) -> User:
    """
    Create an unverified user, generate an OTP and queue the activation email.

    Raises:
        ValidationFailedError: If the email (or requested username) is taken,
            or the requested username has no letters or digits.
    """
    if await get_user_by_email(db, email) is not None:
        raise ValidationFailedError("Invalid Entry", {"email": "Email already registered!"})
    if username is not None:
        username = slugify(username)
        if not username:
            raise ValidationFailedError("Invalid Entry", {"username": "Username must contain letters or digits"})
        if await get_user_by_username(db, username) is not None:
            raise ValidationFailedError("Invalid Entry", {"username": "Username already taken!"})
    else:
        username = await unique_username(db, _USERNAME_SOURCE.sub("", email))

    user = User(
        email=email,
        username=username,
        password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        terms_agreement=terms_agreement,
    )
    otp = generate_otp(user)
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=str(user.id), role=str(role))

    await queue_email_quietly(db, user.id, EmailKind.ACTIVATE, token=str(otp))
    return user


async def verify_email(db: AsyncSession, email: str, otp: int) -> bool:
    """
    Consume the activation OTP.

    Returns False if the account was already verified (nothing consumed).
    """
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("Incorrect Email", code=INCORRECT_EMAIL)
    if user.is_email_verified:
        return False

    _consume_otp(user, otp)
    user.is_email_verified = True
    await queue_email_quietly(db, user.id, EmailKind.WELCOME)
    logger.info("email_verified", user_id=str(user.id))
    return True


async def resend_verification(db: AsyncSession, email: str) -> bool:
    """Regenerate and resend the OTP. False if already verified."""
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("Incorrect Email", code=INCORRECT_EMAIL)
    if user.is_email_verified:
        return False
    otp = generate_otp(user)
    await queue_email_quietly(db, user.id, EmailKind.ACTIVATE, token=str(otp))
    return True


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def _resettable_user(db: AsyncSession, email: str) -> User:
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFoundError("Incorrect Email", code=INCORRECT_EMAIL)
    if user.social_login:
        raise RequestError("Social login accounts have no password to reset", code=INVALID_AUTH)
    return user


async def send_password_reset_otp(db: AsyncSession, email: str) -> None:
    user = await _resettable_user(db, email)
    generate_otp(user)
    await queue_email_quietly(db, user.id, EmailKind.RESET)


async def send_password_reset_link(db: AsyncSession, email: str) -> None:
    user = await _resettable_user(db, email)
    token = generate_token_string(user)
    await queue_email_quietly(db, user.id, EmailKind.RESET, token=token)


async def set_new_password(
    db: AsyncSession,
    password: str,
    *,
    email: str | None = None,
    otp: int | None = None,
    token_string: str | None = None,
) -> User:
    """
    Reset a password by OTP (``email`` + ``otp``) or by link token.

    Both stored sessions are cleared.
    """
    if token_string is not None:
        result = await db.execute(select(User).where(User.token_string == token_string))
        user = result.scalar_one_or_none()
        if user is None:
            raise UnauthorizedError("Token is invalid", code=INVALID_TOKEN)
        if user.social_login:
            raise RequestError("Social login accounts have no password to reset", code=INVALID_AUTH)
        if is_otp_expired(user.token_expiry):
            raise RequestError("Token has expired", code=EXPIRED_OTP)
        user.token_string = None
        user.token_expiry = None
    else:
        if email is None or otp is None:
            raise RequestError("Provide an email and otp, or a token_string")
        user = await _resettable_user(db, email)
        _consume_otp(user, otp)

    user.password = hash_password(password)
    user.access = None
    user.refresh = None
    await queue_email_quietly(db, user.id, EmailKind.RESET_SUCCESS)
    logger.info("password_reset", user_id=str(user.id))
    return user


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def issue_tokens(user: User) -> tuple[str, str]:
    """Mint a token pair and mirror it onto the user row."""
    user.access = create_access_token(user.id)
    user.refresh = create_refresh_token()
    return user.access, user.refresh


async def login(db: AsyncSession, email: str, password: str) -> User:
    """
    Password login.

    Raises:
        UnauthorizedError: ``invalid_credentials`` or ``unverified_user``.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password):
        raise UnauthorizedError("Invalid Credentials", code=INVALID_CREDENTIALS)
    if not user.is_email_verified:
        raise UnauthorizedError("Verify your email first", code=UNVERIFIED_USER)
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")
    issue_tokens(user)
    logger.info("user_logged_in", user_id=str(user.id))
    return user


async def refresh_session(db: AsyncSession, refresh_token: str) -> User:
    """Exchange the stored refresh token for a new pair (both rotate)."""
    result = await db.execute(select(User).where(User.refresh == refresh_token))
    user = result.scalar_one_or_none()
    if user is None:
        raise UnauthorizedError("Refresh token is invalid or expired", code=INVALID_TOKEN)
    try:
        decode_token(refresh_token)
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError("Refresh token is invalid or expired", code=INVALID_TOKEN) from e
    issue_tokens(user)
    return user


def logout(user: User) -> None:
    user.access = None
    user.refresh = None


async def update_password(db: AsyncSession, user: User, old_password: str, new_password: str) -> None:
    """Change password for a signed-in user and revoke the session.

    Raises:
        RequestError: ``password_does_not_match`` or ``same_password``.
    """
    if not verify_password(old_password, user.password):
        raise RequestError("Password does not match", code=PASSWORD_DOES_NOT_MATCH)
    if old_password == new_password:
        raise RequestError("New password cannot be the same as the old one", code=SAME_PASSWORD)
    user.password = hash_password(new_password)
    logout(user)
    await db.flush()
    logger.info("password_updated", user_id=str(user.id))
