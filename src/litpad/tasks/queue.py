"""
Durable task queue backed by the ``tasks`` table.

Tasks are written in a SAVEPOINT of the caller's session, so an enqueue made
during a request commits (or rolls back) with that request's transaction.
Workers claim a task by leasing it with a conditional UPDATE: only a row
whose lease is empty or expired can be taken, so two workers never run the
same task at once. Delivery is at-least-once; handlers must be idempotent.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import delete, func, or_, select, update

from litpad.config import get_settings
from litpad.db.base import utcnow
from litpad.db.models import Task

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

CRITICAL = "critical"
DEFAULT = "default"
LOW = "low"

# critical:default:low = 6:3:1
PRIORITY_WEIGHTS: dict[str, int] = {CRITICAL: 6, DEFAULT: 3, LOW: 1}

STATUS_PENDING = "pending"
STATUS_FAILED = "failed"


class TaskError(Exception):
    """Base for errors a handler raises to steer the queue."""


class RetryableTaskError(TaskError):
    """Transient failure; the task is retried with backoff."""


class PermanentTaskError(TaskError):
    """The task can never succeed; it is marked failed."""


def retry_delay(attempt: int) -> float:
    """Bounded exponential backoff for the given (1-based) attempt."""
    settings = get_settings()
    delay = settings.task_backoff_base_seconds * (2 ** max(0, attempt - 1))
    return min(delay, settings.task_backoff_cap_seconds)


# ---------------------------------------------------------------------------
# Producer side
# ---------------------------------------------------------------------------


async def enqueue(
    db: AsyncSession,
    name: str,
    payload: bytes,
    *,
    priority: str = DEFAULT,
    max_attempts: int | None = None,
    run_at: datetime | None = None,
) -> Task:
    """
    Persist one task and return without waiting for execution.

    The task becomes visible to workers once the caller commits.

    Raises:
        ValueError: On an unknown priority class.
    """
    if priority not in PRIORITY_WEIGHTS:
        msg = f"Unknown priority class: {priority}"
        raise ValueError(msg)

    task = Task(
        name=name,
        payload=payload,
        queue=priority,
        status=STATUS_PENDING,
        attempts=0,
        max_attempts=max_attempts or get_settings().task_max_attempts,
        run_at=run_at or utcnow(),
    )
    async with db.begin_nested():
        db.add(task)
    logger.info("task_enqueued", task_id=str(task.id), task_name=name, queue=priority)
    return task


async def pending_count(db: AsyncSession, name: str | None = None) -> int:
    """Number of pending tasks, optionally for one task name."""
    stmt = select(func.count()).select_from(Task).where(Task.status == STATUS_PENDING)
    if name is not None:
        stmt = stmt.where(Task.name == name)
    return int((await db.execute(stmt)).scalar_one())


# ---------------------------------------------------------------------------
# Consumer side
# ---------------------------------------------------------------------------


async def claim_next(
    db: AsyncSession,
    queue: str,
    worker_id: str,
    lease_seconds: int,
) -> Task | None:
    """
    Lease the oldest runnable task of ``queue``.

    Returns None when the queue is empty or another worker won the race.
    The attempt counter is bumped as part of the claim.
    """
    now = utcnow()
    lease_free = or_(Task.leased_until.is_(None), Task.leased_until < now)

    candidate = await db.execute(
        select(Task.id)
        .where(
            Task.queue == queue,
            Task.status == STATUS_PENDING,
            Task.run_at <= now,
            lease_free,
        )
        .order_by(Task.run_at)
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    task_id = candidate.scalar_one_or_none()
    if task_id is None:
        await db.rollback()
        return None

    result = await db.execute(
        update(Task)
        .where(Task.id == task_id, Task.status == STATUS_PENDING, lease_free)
        .values(
            leased_until=now + timedelta(seconds=lease_seconds),
            worker_id=worker_id,
            attempts=Task.attempts + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount != 1:
        return None

    return await db.get(Task, task_id, populate_existing=True)


async def complete(db: AsyncSession, task_id: uuid.UUID) -> None:
    """Successful tasks are removed."""
    await db.execute(delete(Task).where(Task.id == task_id))
    await db.commit()


async def schedule_retry(db: AsyncSession, task: Task, error: str) -> datetime:
    """Release the lease and push ``run_at`` out by the backoff delay."""
    run_at = utcnow() + timedelta(seconds=retry_delay(task.attempts))
    await db.execute(
        update(Task)
        .where(Task.id == task.id)
        .values(run_at=run_at, leased_until=None, worker_id=None, last_error=error[:2000])
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return run_at


async def mark_failed(db: AsyncSession, task: Task, error: str) -> None:
    """Park the task; it will not be claimed again."""
    await db.execute(
        update(Task)
        .where(Task.id == task.id)
        .values(status=STATUS_FAILED, leased_until=None, last_error=error[:2000])
        .execution_options(synchronize_session=False)
    )
    await db.commit()
