"""Schemas for gift endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from litpad.responses import PaginatedData
from litpad.users.schemas import UserBrief


class GiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    price: int
    lanterns: int
    image_url: str | None = None


class SentGiftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender: UserBrief
    receiver_id: uuid.UUID
    gift: GiftResponse
    claimed: bool
    created_at: datetime


class SentGiftsData(PaginatedData):
    gifts: list[SentGiftResponse]
