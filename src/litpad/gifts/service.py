"""
Gift economy: sending and claiming gifts.

Send debits the sender and records the gift in one transaction, with the
sender row locked for the read-modify-write. Claim credits the receiver the
gift price exactly once.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from litpad.auth.service import get_user_by_username, get_user_for_update
from litpad.db.models import Gift, NotificationType, Role, SentGift, User
from litpad.exceptions import InsufficientCoinsError, NotAllowedError, NotFoundError
from litpad.social.notification_service import create_notification

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from litpad.db.models import Notification

logger = structlog.get_logger()

SENT_GIFTS_PER_PAGE = 100


async def list_gifts(db: AsyncSession) -> list[Gift]:
    result = await db.execute(select(Gift).order_by(Gift.price, Gift.name))
    return list(result.scalars().all())


async def get_gift_by_slug(db: AsyncSession, slug: str) -> Gift | None:
    result = await db.execute(select(Gift).where(Gift.slug == slug))
    return result.scalar_one_or_none()


async def send_gift(
    db: AsyncSession,
    sender: User,
    writer_username: str,
    gift_slug: str,
) -> tuple[SentGift, Notification]:
    """
    Send a gift to a verified writer.

    The caller commits; nothing is written when any check fails.

    Raises:
        NotFoundError: Unknown writer or gift.
        NotAllowedError: Sending to yourself.
        InsufficientCoinsError: The sender can't afford the gift.
    """
    receiver = await get_user_by_username(db, writer_username, role=Role.WRITER, verified_only=True)
    if receiver is None:
        raise NotFoundError("No writer with that username")
    if receiver.id == sender.id:
        raise NotAllowedError("You can't send gifts to yourself")

    gift = await get_gift_by_slug(db, gift_slug)
    if gift is None:
        raise NotFoundError("No gift with that slug")

    locked = await get_user_for_update(db, sender.id)
    if locked.coins < gift.price:
        raise InsufficientCoinsError(balance=locked.coins, required=gift.price)

    sent_gift = SentGift(sender=locked, receiver_id=receiver.id, gift=gift)
    db.add(sent_gift)
    locked.coins -= gift.price
    locked.lanterns += gift.lanterns
    await db.flush()

    notification = await create_notification(
        db,
        sender=locked,
        receiver_id=receiver.id,
        ntype=NotificationType.GIFT,
        text=f"{locked.full_name} sent you a gift.",
        sent_gift_id=sent_gift.id,
    )
    logger.info(
        "gift_sent",
        sent_gift_id=str(sent_gift.id),
        sender_id=str(locked.id),
        receiver_id=str(receiver.id),
        gift=gift.slug,
        price=gift.price,
    )
    return sent_gift, notification


async def list_sent_gifts(
    db: AsyncSession,
    receiver_id: uuid.UUID,
    *,
    claimed: bool | None = None,
    page: int = 1,
    per_page: int = SENT_GIFTS_PER_PAGE,
) -> tuple[list[SentGift], int]:
    """Gifts received by a writer, newest first."""
    filters = [SentGift.receiver_id == receiver_id]
    if claimed is not None:
        filters.append(SentGift.claimed.is_(claimed))

    total = (await db.execute(select(func.count()).select_from(SentGift).where(*filters))).scalar_one()
    result = await db.execute(
        select(SentGift)
        .where(*filters)
        .order_by(SentGift.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def claim_gift(db: AsyncSession, receiver: User, sent_gift_id: uuid.UUID) -> SentGift:
    """
    Claim a received gift. A second claim returns the gift unchanged.

    The claimed flag is flipped with a conditional UPDATE, so concurrent
    claims credit the receiver once.

    Raises:
        NotFoundError: No such gift was sent to ``receiver``.
    """
    result = await db.execute(
        select(SentGift).where(SentGift.id == sent_gift_id, SentGift.receiver_id == receiver.id)
    )
    sent_gift = result.scalar_one_or_none()
    if sent_gift is None:
        raise NotFoundError("No gift with that ID was sent to you")
    if sent_gift.claimed:
        return sent_gift

    flipped = await db.execute(
        update(SentGift)
        .where(SentGift.id == sent_gift.id, SentGift.claimed.is_(False))
        .values(claimed=True)
        .execution_options(synchronize_session=False)
    )
    if flipped.rowcount == 1:
        locked = await get_user_for_update(db, receiver.id)
        locked.coins += sent_gift.gift.price
        logger.info("gift_claimed", sent_gift_id=str(sent_gift.id), receiver_id=str(receiver.id))
    sent_gift.claimed = True
    await db.flush()
    return sent_gift
