"""Catalog seed data: gifts, coin packs and subscription plans."""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.db.models import Coin, Gift, PlanType, SubscriptionPlan

logger = logging.getLogger(__name__)

GIFT_NAMES = ["Red rose", "Black dahlia", "Scroll", "Magic wand", "Wolf", "Baby Dragon"]

GIFT_SEED_DATA: list[dict] = [
    {"name": name, "price": 100 * i, "lanterns": 2 * i} for i, name in enumerate(GIFT_NAMES, start=1)
]

COIN_SEED_DATA: list[dict] = [
    {"amount": 10 * i, "price": Decimal("20.25") * i} for i in range(1, 11)
]

PLAN_SEED_DATA: list[dict] = [
    {"type": PlanType.MONTHLY, "amount": Decimal("12.99")},
    {"type": PlanType.ANNUAL, "amount": Decimal("131.88")},
]


async def seed_catalog(db: AsyncSession) -> int:
    """Insert missing catalog rows. Idempotent; returns rows inserted."""
    inserted = 0

    existing_gifts = set((await db.execute(select(Gift.name))).scalars().all())
    for data in GIFT_SEED_DATA:
        if data["name"] not in existing_gifts:
            db.add(Gift(**data))
            inserted += 1

    if (await db.execute(select(Coin.id).limit(1))).first() is None:
        for data in COIN_SEED_DATA:
            db.add(Coin(**data))
            inserted += 1

    existing_plans = set((await db.execute(select(SubscriptionPlan.type))).scalars().all())
    for data in PLAN_SEED_DATA:
        if data["type"] not in existing_plans:
            db.add(SubscriptionPlan(**data))
            inserted += 1

    await db.commit()
    logger.info("Seeded %d catalog rows", inserted)
    return inserted
