"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from litpad.db.models import Role


class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class RegisterRequest(_EmailBody):
    password: str = Field(..., min_length=8, max_length=50)
    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    username: str | None = Field(None, min_length=2, max_length=100)
    account_type: Role = Role.READER
    terms_agreement: bool = False


class RegisterData(BaseModel):
    email: str


class VerifyEmailRequest(_EmailBody):
    otp: int = Field(..., ge=100000, le=999999)


class EmailRequest(_EmailBody):
    """Resend verification, or request a reset code/link."""


class SetNewPasswordRequest(BaseModel):
    """Reset by ``email`` + ``otp`` or by the ``token_string`` from a reset link."""

    email: EmailStr | None = None
    otp: int | None = None
    token_string: str | None = Field(None, min_length=70, max_length=70)
    password: str = Field(..., min_length=8, max_length=50)

    @model_validator(mode="after")
    def one_credential(self) -> SetNewPasswordRequest:
        if self.token_string is None and (self.email is None or self.otp is None):
            msg = "Provide either email and otp, or token_string"
            raise ValueError(msg)
        return self


class LoginRequest(_EmailBody):
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh: str


class TokensData(BaseModel):
    user_id: uuid.UUID
    access: str
    refresh: str
