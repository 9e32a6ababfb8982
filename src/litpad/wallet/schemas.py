"""Schemas for wallet endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from litpad.db.models import PaymentStatus


class CoinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: int
    price: Decimal


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: str
    amount: Decimal


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    reference: str
    coin: CoinResponse | None = None
    subscription_plan: PlanResponse | None = None
    quantity: int
    payment_status: str
    payment_type: str
    created_at: datetime


class BoughtBookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    book_id: uuid.UUID
    price: int
    created_at: datetime


class PaymentStatusRequest(BaseModel):
    status: PaymentStatus
