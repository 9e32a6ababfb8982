"""
Wallet: coin packs, subscription plans and payment outcomes.

``apply_payment_status`` is the single place a payment settles. Status
moves along PENDING -> SUCCEEDED | FAILED | CANCELED; terminal states never
change again and re-applying the current status is a no-op, so provider
callbacks can be replayed safely.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from dateutil.relativedelta import relativedelta
from sqlalchemy import select

from litpad.auth.service import get_user_for_update
from litpad.db.base import utcnow
from litpad.db.models import BoughtBook, Coin, PaymentStatus, PlanType, SubscriptionPlan, Transaction
from litpad.email.tasks import EmailKind, queue_email_quietly
from litpad.exceptions import NotFoundError, RequestError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from litpad.db.models import User

logger = structlog.get_logger()

TERMINAL_STATUSES = frozenset({PaymentStatus.SUCCEEDED, PaymentStatus.FAILED, PaymentStatus.CANCELED})

_STATUS_EMAIL = {
    PaymentStatus.SUCCEEDED: EmailKind.PAYMENT_SUCCEEDED,
    PaymentStatus.FAILED: EmailKind.PAYMENT_FAILED,
    PaymentStatus.CANCELED: EmailKind.PAYMENT_CANCELED,
}


async def list_coins(db: AsyncSession) -> list[Coin]:
    result = await db.execute(select(Coin).order_by(Coin.amount))
    return list(result.scalars().all())


async def list_plans(db: AsyncSession) -> list[SubscriptionPlan]:
    result = await db.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.amount))
    return list(result.scalars().all())


async def list_transactions(db: AsyncSession, user_id: uuid.UUID) -> list[Transaction]:
    result = await db.execute(
        select(Transaction).where(Transaction.user_id == user_id).order_by(Transaction.created_at.desc())
    )
    return list(result.scalars().all())


async def list_bought_books(db: AsyncSession, user_id: uuid.UUID) -> list[BoughtBook]:
    result = await db.execute(
        select(BoughtBook).where(BoughtBook.buyer_id == user_id).order_by(BoughtBook.created_at.desc())
    )
    return list(result.scalars().all())


def _describe(txn: Transaction) -> str:
    if txn.coin is not None:
        return f"{txn.coin.amount * txn.quantity} coins"
    if txn.subscription_plan is not None:
        return f"the {txn.subscription_plan.type} subscription"
    return "your order"


def _credit(user: User, txn: Transaction) -> None:
    """Deliver what was paid for."""
    if txn.coin is not None:
        user.coins += txn.coin.amount * txn.quantity
        return

    plan = txn.subscription_plan
    if plan is None:
        msg = f"Transaction {txn.reference} has no product"
        raise RequestError(msg)
    now = utcnow()
    start = user.subscription_expiry if user.subscription_expiry and user.subscription_expiry > now else now
    months = 12 if plan.type == PlanType.ANNUAL else 1
    user.subscription_expiry = start + relativedelta(months=months * txn.quantity)
    user.current_plan = plan.type
    # New cycle: re-arm the reminder driver
    user.reminder_sent = False


async def apply_payment_status(db: AsyncSession, reference: str, status: PaymentStatus) -> Transaction:
    """
    Move a transaction to ``status`` and settle it.

    Raises:
        NotFoundError: Unknown reference.
        RequestError: The transaction is already in another terminal state.
    """
    result = await db.execute(select(Transaction).where(Transaction.reference == reference).with_for_update())
    txn = result.scalar_one_or_none()
    if txn is None:
        raise NotFoundError("No transaction with that reference")

    if txn.payment_status == status:
        return txn
    if txn.payment_status in TERMINAL_STATUSES:
        msg = f"Transaction is already {txn.payment_status}"
        raise RequestError(msg)
    if status == PaymentStatus.PENDING:
        return txn

    txn.payment_status = status
    if status == PaymentStatus.SUCCEEDED:
        user = await get_user_for_update(db, txn.user_id)
        _credit(user, txn)

    await queue_email_quietly(db, txn.user_id, _STATUS_EMAIL[status], extra_data={"description": _describe(txn)})
    await db.flush()
    logger.info("payment_status_applied", reference=reference, status=str(status), user_id=str(txn.user_id))
    return txn
