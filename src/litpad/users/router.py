"""Profile router: all /api/v1/profiles/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth.dependencies import get_current_user
from litpad.auth.service import get_user_by_username, update_password
from litpad.database import get_session
from litpad.db.models import User
from litpad.exceptions import NotFoundError
from litpad.responses import DataResponse, ResponseMessage
from litpad.social.notification_push import send_notification_in_socket
from litpad.users.schemas import (
    FollowListResponse,
    FollowToggleResponse,
    ProfileResponse,
    UpdatePasswordRequest,
    UserBrief,
)
from litpad.users.service import follow_counts, list_followers, list_following, toggle_follow

router = APIRouter(prefix="/api/v1/profiles", tags=["Profiles"])


async def _profile_or_404(db: AsyncSession, username: str, *, verified_only: bool = False) -> User:
    user = await get_user_by_username(db, username, verified_only=verified_only)
    if user is None:
        raise NotFoundError("No user with that username")
    return user


@router.get("/profile/{username}", response_model=DataResponse[ProfileResponse])
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_session),
) -> DataResponse[ProfileResponse]:
    user = await _profile_or_404(db, username)
    followers, following = await follow_counts(db, user.id)
    profile = ProfileResponse(
        **UserBrief.model_validate(user).model_dump(),
        bio=user.bio,
        followers_count=followers,
        following_count=following,
        created_at=user.created_at,
    )
    return DataResponse(message="Profile fetched", data=profile)


@router.get("/profile/{username}/follow", response_model=DataResponse[FollowToggleResponse])
async def follow_user(
    username: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[FollowToggleResponse]:
    """Toggle following a verified writer."""
    target = await _profile_or_404(db, username, verified_only=True)
    following, notification = await toggle_follow(db, user, target)
    await db.commit()
    if notification is not None:
        await send_notification_in_socket(notification)
    message = "User followed successfully" if following else "User unfollowed successfully"
    return DataResponse(message=message, data=FollowToggleResponse(following=following))


@router.get("/followers", response_model=DataResponse[FollowListResponse])
async def followers(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[FollowListResponse]:
    users = await list_followers(db, user.id)
    return DataResponse(
        message="Followers fetched",
        data=FollowListResponse(users=[UserBrief.model_validate(u) for u in users]),
    )


@router.get("/following", response_model=DataResponse[FollowListResponse])
async def following(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[FollowListResponse]:
    users = await list_following(db, user.id)
    return DataResponse(
        message="Following fetched",
        data=FollowListResponse(users=[UserBrief.model_validate(u) for u in users]),
    )


@router.put("/update-password", response_model=ResponseMessage)
async def change_password(
    body: UpdatePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    """Change password; the current session is revoked."""
    await update_password(db, user, body.old_password, body.password)
    await db.commit()
    return ResponseMessage(message="Password updated successfully")
