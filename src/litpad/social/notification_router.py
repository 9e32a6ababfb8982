"""Notification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth.dependencies import get_current_user
from litpad.database import get_session
from litpad.db.models import User
from litpad.exceptions import NotFoundError
from litpad.responses import DataResponse, ResponseMessage, paginate_meta
from litpad.social.notification_service import (
    NOTIFICATIONS_PER_PAGE,
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)
from litpad.social.schemas import (
    NotificationListData,
    NotificationResponse,
    ReadNotificationRequest,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=DataResponse[NotificationListData])
async def list_notifications(
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[NotificationListData]:
    """The caller's notifications, newest first."""
    notifications, total = await get_notifications(db, user.id, page, NOTIFICATIONS_PER_PAGE)
    unread = await get_unread_count(db, user.id)
    return DataResponse(
        message="Notifications fetched",
        data=NotificationListData(
            **paginate_meta(total, page, NOTIFICATIONS_PER_PAGE),
            unread_count=unread,
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
        ),
    )


@router.post("/read", response_model=ResponseMessage)
async def read_notification(
    body: ReadNotificationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ResponseMessage:
    """Mark one notification (``id``) or all of them (``mark_all_as_read``) as read."""
    if body.mark_all_as_read:
        await mark_all_as_read(db, user.id)
        await db.commit()
        return ResponseMessage(message="Notifications read")

    if body.id is None or not await mark_as_read(db, user.id, body.id):
        raise NotFoundError("User has no notification with that ID")
    await db.commit()
    return ResponseMessage(message="Notification read")
