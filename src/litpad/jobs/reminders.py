"""Subscription reminder driver.

Every tick scans for subscriptions that are about to expire or have expired
and enqueues one reminder email per user. ``reminder_sent`` is flipped only
for users whose enqueue succeeded, in a statement separate from the enqueues,
so a failed enqueue leaves the user for the next tick.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from litpad.config import get_settings
from litpad.db.base import utcnow
from litpad.db.models import User
from litpad.email.tasks import EmailKind, queue_email_task

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = structlog.get_logger()


async def _remind(db: AsyncSession, users: list[User], kind: EmailKind) -> list[uuid.UUID]:
    """Enqueue ``kind`` for each user; returns the ids that were enqueued."""
    sent: list[uuid.UUID] = []
    for user in users:
        try:
            await queue_email_task(db, user.id, kind, extra_data={"subscriptionType": user.current_plan})
        except Exception:
            logger.exception("reminder_enqueue_failed", user_id=str(user.id), kind=str(kind))
            continue
        sent.append(user.id)

    if sent:
        await db.execute(update(User).where(User.id.in_(sent)).values(reminder_sent=True))
    return sent


async def run_reminder_job(db: AsyncSession, now: datetime | None = None) -> tuple[int, int]:
    """One pass of both scans. Returns (expiring, expired) reminders enqueued."""
    now = now or utcnow()
    window = timedelta(days=get_settings().reminder_expiring_window_days)

    expiring = await db.execute(
        select(User).where(
            User.reminder_sent.is_(False),
            User.subscription_expiry >= now,
            User.subscription_expiry <= now + window,
        )
    )
    expiring_ids = await _remind(db, list(expiring.scalars().all()), EmailKind.SUBSCRIPTION_EXPIRING)
    await db.commit()

    expired = await db.execute(
        select(User).where(
            User.reminder_sent.is_(False),
            User.subscription_expiry < now,
        )
    )
    expired_ids = await _remind(db, list(expired.scalars().all()), EmailKind.SUBSCRIPTION_EXPIRED)
    await db.commit()

    if expiring_ids or expired_ids:
        logger.info("reminders_enqueued", expiring=len(expiring_ids), expired=len(expired_ids))
    return len(expiring_ids), len(expired_ids)


class ReminderDriver:
    """Runs the reminder job at start and then every ``interval_hours``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        interval_hours: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.interval_seconds = (interval_hours or get_settings().reminder_cron_hours) * 3600
        self._stopping = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def tick(self) -> tuple[int, int]:
        async with self.session_factory() as db:
            return await run_reminder_job(db)

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("reminder_tick_failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                continue

    def start(self) -> None:
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info("reminder_driver_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("reminder_driver_stopped")
