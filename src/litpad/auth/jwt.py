"""
HS256 JWT management for access and refresh tokens.

Access tokens carry ``user_id``; refresh tokens carry only a random ``data``
value. Both are mirrored onto the user row, and a token that does not match
the stored copy is treated as revoked.
"""

from __future__ import annotations

import secrets
import string
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from litpad.config import get_settings

ALGORITHM = "HS256"
_REFRESH_ALPHABET = string.ascii_letters + string.digits


def _random_string(length: int) -> str:
    return "".join(secrets.choice(_REFRESH_ALPHABET) for _ in range(length))


def create_access_token(user_id: uuid.UUID) -> str:
    """Create an access token valid for ACCESS_TOKEN_EXPIRE_MINUTES."""
    settings = get_settings()
    payload: dict[str, Any] = {
        "user_id": str(user_id),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def create_refresh_token() -> str:
    """Create a refresh token valid for REFRESH_TOKEN_EXPIRE_MINUTES."""
    settings = get_settings()
    payload: dict[str, Any] = {
        "data": _random_string(10),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.refresh_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, forged, or expired.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    return payload


def user_id_from_access_token(token: str) -> uuid.UUID:
    """Decode an access token and return its subject.

    Raises:
        jwt.InvalidTokenError: On a bad token or a missing/garbled ``user_id``.
    """
    payload = decode_token(token)
    try:
        return uuid.UUID(str(payload["user_id"]))
    except (KeyError, ValueError) as e:
        msg = "Token has no valid user_id claim"
        raise jwt.InvalidTokenError(msg) from e
