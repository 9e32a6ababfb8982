"""Profile and follow business logic."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, insert, select

from litpad.auth.service import get_user_for_update
from litpad.db.models import NotificationType, Role, User, user_followers
from litpad.exceptions import ForbiddenError, RequestError
from litpad.social.notification_service import create_notification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from litpad.db.models import Notification

logger = structlog.get_logger()


async def is_following(db: AsyncSession, follower_id: uuid.UUID, followed_id: uuid.UUID) -> bool:
    result = await db.execute(
        select(func.count())
        .select_from(user_followers)
        .where(user_followers.c.follower_id == follower_id, user_followers.c.followed_id == followed_id)
    )
    return result.scalar_one() > 0


async def toggle_follow(db: AsyncSession, follower: User, target: User) -> tuple[bool, Notification | None]:
    """
    Follow ``target`` if not yet followed, otherwise unfollow.

    Returns ``(now_following, notification)``; a notification is only
    created on follow.

    Raises:
        RequestError: When following yourself.
        ForbiddenError: When the target is not a writer.
    """
    if follower.id == target.id:
        raise RequestError("Cannot follow yourself")
    if target.role != Role.WRITER:
        raise ForbiddenError("Only writers can be followed")

    # Serializes concurrent toggles by the same follower
    await get_user_for_update(db, follower.id)
    if await is_following(db, follower.id, target.id):
        await db.execute(
            delete(user_followers).where(
                user_followers.c.follower_id == follower.id,
                user_followers.c.followed_id == target.id,
            )
        )
        logger.info("user_unfollowed", follower_id=str(follower.id), followed_id=str(target.id))
        return False, None

    await db.execute(insert(user_followers).values(follower_id=follower.id, followed_id=target.id))
    notification = await create_notification(
        db,
        sender=follower,
        receiver_id=target.id,
        ntype=NotificationType.FOLLOWING,
        text=f"{follower.full_name} started following you.",
    )
    logger.info("user_followed", follower_id=str(follower.id), followed_id=str(target.id))
    return True, notification


async def follow_counts(db: AsyncSession, user_id: uuid.UUID) -> tuple[int, int]:
    """(followers, following) for a user."""
    followers = await db.execute(
        select(func.count()).select_from(user_followers).where(user_followers.c.followed_id == user_id)
    )
    following = await db.execute(
        select(func.count()).select_from(user_followers).where(user_followers.c.follower_id == user_id)
    )
    return followers.scalar_one(), following.scalar_one()


async def list_followers(db: AsyncSession, user_id: uuid.UUID) -> list[User]:
    result = await db.execute(
        select(User)
        .join(user_followers, user_followers.c.follower_id == User.id)
        .where(user_followers.c.followed_id == user_id)
        .order_by(User.username)
    )
    return list(result.scalars().all())


async def list_following(db: AsyncSession, user_id: uuid.UUID) -> list[User]:
    result = await db.execute(
        select(User)
        .join(user_followers, user_followers.c.followed_id == User.id)
        .where(user_followers.c.follower_id == user_id)
        .order_by(User.username)
    )
    return list(result.scalars().all())
