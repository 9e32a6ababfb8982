"""Notification store.

Notifications are:
1. Persisted in the database, addressed to one receiver
2. Pushed to the receiver through the notification hub (see notification_push)

Only the hub deletes notifications, on a broadcast whose status is DELETED.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from litpad.db.models import Notification, NotificationType, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

NOTIFICATIONS_PER_PAGE = 50

_REFERENCE_FIELDS = ("book_id", "review_id", "reply_id", "sent_gift_id")


async def create_notification(
    db: AsyncSession,
    *,
    receiver_id: uuid.UUID,
    ntype: NotificationType,
    text: str,
    sender: User | None = None,
    book_id: uuid.UUID | None = None,
    review_id: uuid.UUID | None = None,
    reply_id: uuid.UUID | None = None,
    sent_gift_id: uuid.UUID | None = None,
) -> Notification:
    """Persist a notification. At most one reference id may be given.

    ``sender`` is attached as an object so the new row serializes without a
    lazy load.
    """
    references = {"book_id": book_id, "review_id": review_id, "reply_id": reply_id, "sent_gift_id": sent_gift_id}
    populated = [name for name in _REFERENCE_FIELDS if references[name] is not None]
    if len(populated) > 1:
        msg = f"A notification references at most one object, got {populated}"
        raise ValueError(msg)

    notification = Notification(
        sender=sender,
        receiver_id=receiver_id,
        ntype=ntype,
        text=text[:100],
        **references,
    )
    db.add(notification)
    await db.flush()
    logger.info("Notification %s (%s) created for %s", notification.id, ntype, receiver_id)
    return notification


async def get_notifications(
    db: AsyncSession,
    receiver_id: uuid.UUID,
    page: int = 1,
    per_page: int = NOTIFICATIONS_PER_PAGE,
) -> tuple[list[Notification], int]:
    """Get the receiver's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.receiver_id == receiver_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.receiver_id == receiver_id)
        .order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def mark_as_read(db: AsyncSession, receiver_id: uuid.UUID, notification_id: uuid.UUID) -> bool:
    """Mark a single notification as read. Returns True if the receiver owns it."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.receiver_id == receiver_id)
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, receiver_id: uuid.UUID) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.receiver_id == receiver_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, receiver_id: uuid.UUID) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.receiver_id == receiver_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()


async def delete_notification(db: AsyncSession, notification_id: uuid.UUID) -> bool:
    """Hard-delete by id. Returns True if a row went away."""
    result = await db.execute(delete(Notification).where(Notification.id == notification_id))
    await db.commit()
    return result.rowcount > 0
