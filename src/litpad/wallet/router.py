"""Wallet router: all /api/v1/wallet/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.auth.dependencies import get_current_staff, get_current_user
from litpad.database import get_session
from litpad.db.models import User
from litpad.responses import DataResponse
from litpad.wallet.schemas import (
    BoughtBookResponse,
    CoinResponse,
    PaymentStatusRequest,
    PlanResponse,
    TransactionResponse,
)
from litpad.wallet.service import (
    apply_payment_status,
    list_bought_books,
    list_coins,
    list_plans,
    list_transactions,
)

router = APIRouter(prefix="/api/v1/wallet", tags=["Wallet"])


@router.get("/coins", response_model=DataResponse[list[CoinResponse]])
async def coins(db: AsyncSession = Depends(get_session)) -> DataResponse[list[CoinResponse]]:
    items = await list_coins(db)
    return DataResponse(message="Coins fetched", data=[CoinResponse.model_validate(c) for c in items])


@router.get("/plans", response_model=DataResponse[list[PlanResponse]])
async def plans(db: AsyncSession = Depends(get_session)) -> DataResponse[list[PlanResponse]]:
    items = await list_plans(db)
    return DataResponse(message="Plans fetched", data=[PlanResponse.model_validate(p) for p in items])


@router.get("/transactions", response_model=DataResponse[list[TransactionResponse]])
async def transactions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[list[TransactionResponse]]:
    items = await list_transactions(db, user.id)
    return DataResponse(
        message="Transactions fetched",
        data=[TransactionResponse.model_validate(t) for t in items],
    )


@router.get("/bought-books", response_model=DataResponse[list[BoughtBookResponse]])
async def bought_books(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[list[BoughtBookResponse]]:
    items = await list_bought_books(db, user.id)
    return DataResponse(message="Books fetched", data=[BoughtBookResponse.model_validate(b) for b in items])


@router.post("/transactions/{reference}/status", response_model=DataResponse[TransactionResponse])
async def set_payment_status(
    reference: str,
    body: PaymentStatusRequest,
    _staff: User = Depends(get_current_staff),
    db: AsyncSession = Depends(get_session),
) -> DataResponse[TransactionResponse]:
    """Settle a payment (stand-in for the provider callback)."""
    txn = await apply_payment_status(db, reference, body.status)
    await db.commit()
    return DataResponse(message="Payment status updated", data=TransactionResponse.model_validate(txn))
