"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth import service
from litpad.auth.dependencies import get_current_user
from litpad.auth.schemas import (
    EmailRequest,
    LoginRequest,
    RefreshRequest,
    RegisterData,
    RegisterRequest,
    SetNewPasswordRequest,
    TokensData,
    VerifyEmailRequest,
)
from litpad.database import get_session
from litpad.db.models import User
from litpad.responses import DataResponse, ResponseMessage

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


# ---------------------------------------------------------------------------
# Registration and verification
# ---------------------------------------------------------------------------


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=DataResponse[RegisterData])
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> DataResponse[RegisterData]:
    user = await service.register_user(
        db,
        body.email,
        body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        username=body.username,
        role=body.account_type,
        terms_agreement=body.terms_agreement,
    )
    await db.commit()
    return DataResponse(message="Registration successful", data=RegisterData(email=user.email))


@router.post("/verify-email", response_model=ResponseMessage)
async def verify_email(
    body: VerifyEmailRequest,
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    verified = await service.verify_email(db, body.email, body.otp)
    if not verified:
        return ResponseMessage(message="Email already verified")
    await db.commit()
    return ResponseMessage(message="Account verification successful")


@router.post("/resend-verification-email", response_model=ResponseMessage)
async def resend_verification_email(
    body: EmailRequest,
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    sent = await service.resend_verification(db, body.email)
    if not sent:
        return ResponseMessage(message="Email already verified")
    await db.commit()
    return ResponseMessage(message="Verification email sent")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


@router.post("/send-password-reset-otp", response_model=ResponseMessage)
async def send_password_reset_otp(
    body: EmailRequest,
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    await service.send_password_reset_otp(db, body.email)
    await db.commit()
    return ResponseMessage(message="Password otp sent")


@router.post("/send-password-reset-link", response_model=ResponseMessage)
async def send_password_reset_link(
    body: EmailRequest,
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    await service.send_password_reset_link(db, body.email)
    await db.commit()
    return ResponseMessage(message="Password reset link sent")


@router.post("/set-new-password", response_model=ResponseMessage)
async def set_new_password(
    body: SetNewPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    await service.set_new_password(
        db,
        body.password,
        email=body.email,
        otp=body.otp,
        token_string=body.token_string,
    )
    await db.commit()
    return ResponseMessage(message="Password reset successful")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@router.post("/login", status_code=status.HTTP_201_CREATED, response_model=DataResponse[TokensData])
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> DataResponse[TokensData]:
    user = await service.login(db, body.email, body.password)
    await db.commit()
    return DataResponse(
        message="Login successful",
        data=TokensData(user_id=user.id, access=user.access or "", refresh=user.refresh or ""),
    )


@router.post("/refresh", status_code=status.HTTP_201_CREATED, response_model=DataResponse[TokensData])
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_session),
) -> DataResponse[TokensData]:
    user = await service.refresh_session(db, body.refresh)
    await db.commit()
    return DataResponse(
        message="Tokens refresh successful",
        data=TokensData(user_id=user.id, access=user.access or "", refresh=user.refresh or ""),
    )


@router.get("/logout", response_model=ResponseMessage)
async def logout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    service.logout(user)
    await db.commit()
    return ResponseMessage(message="Logout successful")
