"""Domain exceptions rendered as failure envelopes.

Every error carries a stable machine ``code`` that clients switch on.
"""

from __future__ import annotations

from typing import Any

# Machine codes
UNAUTHORIZED_USER = "unauthorized_user"
INVALID_TOKEN = "invalid_token"
INVALID_REQUEST = "invalid_request"
INVALID_PARAM = "invalid_param"
INVALID_ENTRY = "invalid_entry"
INCORRECT_EMAIL = "incorrect_email"
INCORRECT_OTP = "incorrect_otp"
EXPIRED_OTP = "expired_otp"
NON_EXISTENT = "non_existent"
NOT_ALLOWED = "not_allowed"
INVALID_AUTH = "invalid_auth"
INVALID_CREDENTIALS = "invalid_credentials"
UNVERIFIED_USER = "unverified_user"
INSUFFICIENT_COINS = "insufficient_coins"
PASSWORD_DOES_NOT_MATCH = "password_does_not_match"
SAME_PASSWORD = "same_password"
AUTHORS_ONLY = "authors_only"
ADMINS_ONLY = "admins_only"
SERVER_ERROR = "server_error"


class LitPadError(Exception):
    """Base exception for all domain errors."""

    status_code = 400
    code = INVALID_REQUEST

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.data = data
        super().__init__(message)


class RequestError(LitPadError):
    """Generic 400 with an explicit code."""


class InvalidParamError(LitPadError):
    code = INVALID_PARAM


class ValidationFailedError(LitPadError):
    """Field-level failure raised after schema validation (e.g. duplicate email)."""

    status_code = 422
    code = INVALID_ENTRY

    def __init__(self, message: str, errors: dict[str, str]) -> None:
        super().__init__(message, data=errors)


class NotFoundError(LitPadError):
    status_code = 404
    code = NON_EXISTENT


class NotAllowedError(LitPadError):
    code = NOT_ALLOWED


class InsufficientCoinsError(LitPadError):
    """Raised when the sender cannot afford a gift."""

    code = INSUFFICIENT_COINS

    def __init__(self, balance: int, required: int) -> None:
        self.balance = balance
        self.required = required
        super().__init__("You don't have enough coins to send that gift")


class UnauthorizedError(LitPadError):
    status_code = 401
    code = UNAUTHORIZED_USER


class InvalidTokenError(UnauthorizedError):
    code = INVALID_TOKEN


class ForbiddenError(LitPadError):
    status_code = 403
    code = NOT_ALLOWED
