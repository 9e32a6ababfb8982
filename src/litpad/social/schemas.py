"""Pydantic schemas for notification endpoints and socket envelopes."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from litpad.responses import PaginatedData
from litpad.users.schemas import UserBrief


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender: UserBrief | None = None
    receiver_id: uuid.UUID
    ntype: str
    text: str
    book_id: uuid.UUID | None = None
    review_id: uuid.UUID | None = None
    reply_id: uuid.UUID | None = None
    sent_gift_id: uuid.UUID | None = None
    is_read: bool
    created_at: datetime


class NotificationListData(PaginatedData):
    unread_count: int
    notifications: list[NotificationResponse]


class ReadNotificationRequest(BaseModel):
    id: uuid.UUID | None = None
    mark_all_as_read: bool = False


class SocketEnvelope(BaseModel):
    """What a broadcaster writes to the hub: notification fields plus routing."""

    model_config = ConfigDict(extra="allow")

    status: Literal["CREATED", "DELETED"]
    receiver_id: uuid.UUID
    id: uuid.UUID | None = None
