"""FastAPI authentication dependencies (auth, writer-only, staff-only)."""

from __future__ import annotations

import secrets

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth.jwt import user_id_from_access_token
from litpad.auth.service import get_user_by_id
from litpad.database import get_session
from litpad.db.models import User
from litpad.exceptions import ADMINS_ONLY, AUTHORS_ONLY, InvalidTokenError, UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


async def resolve_access_token(db: AsyncSession, token: str) -> User:
    """
    Turn a raw access token into its active user.

    The token must verify and must equal the copy stored on the user row;
    logout and password changes clear that copy.

    Raises:
        InvalidTokenError: On a forged, expired, or revoked token.
    """
    try:
        user_id = user_id_from_access_token(token)
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError("Auth Token is Invalid or Expired!") from e

    user = await get_user_by_id(db, user_id)
    if user is None or user.access is None or not secrets.compare_digest(user.access, token):
        raise InvalidTokenError("Auth Token is Invalid or Expired!")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Require ``Authorization: Bearer <jwt>``. Raises 401 on failure."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Unauthorized User!")
    return await resolve_access_token(db, credentials.credentials)


async def get_current_writer(user: User = Depends(get_current_user)) -> User:
    if not user.is_writer:
        raise UnauthorizedError("For Authors only!", code=AUTHORS_ONLY)
    return user


async def get_current_staff(user: User = Depends(get_current_user)) -> User:
    if not user.is_staff:
        raise UnauthorizedError("For Admins only!", code=ADMINS_ONLY)
    return user
