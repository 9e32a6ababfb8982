"""
Worker pool draining the task queue.

N asyncio workers share one handler registry. Each worker walks the
priority classes in a smooth weighted round-robin (critical:default:low =
6:3:1) and falls through to the next class when its pick is empty, so low
priority work still drains when nothing else is queued.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from litpad.config import get_settings
from litpad.tasks.queue import (
    PRIORITY_WEIGHTS,
    PermanentTaskError,
    claim_next,
    complete,
    mark_failed,
    schedule_retry,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litpad.db.models import Task

logger = structlog.get_logger()


@dataclass
class TaskContext:
    """Per-invocation context handed to a handler."""

    task_id: uuid.UUID
    name: str
    attempt: int
    session_factory: async_sessionmaker[AsyncSession]
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)


TaskHandler = Callable[[TaskContext, bytes], Awaitable[None]]


def weighted_schedule(weights: dict[str, int]) -> list[str]:
    """Interleave queue names by weight (nginx smooth weighted round-robin).

    ``{"critical": 6, "default": 3, "low": 1}`` yields a 10-slot cycle where
    critical takes 6 slots without starving the others for long stretches.
    """
    total = sum(weights.values())
    current = dict.fromkeys(weights, 0)
    order: list[str] = []
    for _ in range(total):
        for name, weight in weights.items():
            current[name] += weight
        best = max(current, key=lambda n: current[n])
        current[best] -= total
        order.append(best)
    return order


class WorkerPool:
    """Bounded pool of queue consumers with graceful shutdown."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        concurrency: int | None = None,
        weights: dict[str, int] | None = None,
    ) -> None:
        settings = get_settings()
        self.session_factory = session_factory
        self.concurrency = concurrency or settings.worker_concurrency
        self.weights = weights or PRIORITY_WEIGHTS
        self.lease_seconds = settings.task_lease_seconds
        self.timeout_seconds = settings.task_timeout_seconds
        self.poll_interval = settings.task_poll_interval_seconds
        self.grace_seconds = settings.worker_shutdown_grace_seconds

        self._handlers: dict[str, TaskHandler] = {}
        self._schedule = weighted_schedule(self.weights)
        self._stopping = asyncio.Event()
        self._workers: list[asyncio.Task[None]] = []
        self._in_flight: dict[str, TaskContext] = {}

    def register(self, name: str, handler: TaskHandler) -> None:
        """Bind a task name to its handler."""
        self._handlers[name] = handler

    @property
    def running(self) -> bool:
        return bool(self._workers) and not self._stopping.is_set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Spawn the worker coroutines."""
        self._stopping.clear()
        for i in range(self.concurrency):
            worker_id = f"worker-{i}-{uuid.uuid4().hex[:8]}"
            self._workers.append(asyncio.create_task(self._run_worker(worker_id, offset=i)))
        logger.info("worker_pool_started", concurrency=self.concurrency, handlers=sorted(self._handlers))

    async def stop(self) -> None:
        """Signal cancellation, wait for the grace period, then cancel stragglers."""
        self._stopping.set()
        for ctx in self._in_flight.values():
            ctx.cancelled.set()
        if not self._workers:
            return

        _done, pending = await asyncio.wait(self._workers, timeout=self.grace_seconds)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("worker_pool_forced_stop", abandoned=len(pending))
        self._workers.clear()
        logger.info("worker_pool_stopped")

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    async def _run_worker(self, worker_id: str, offset: int = 0) -> None:
        cursor = offset % len(self._schedule)
        while not self._stopping.is_set():
            try:
                ran = await self.run_once(worker_id, cursor)
            except SQLAlchemyError:
                logger.exception("worker_claim_failed", worker_id=worker_id)
                ran = False
            cursor = (cursor + 1) % len(self._schedule)
            if not ran:
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=self.poll_interval)
                except TimeoutError:
                    pass

    def _queue_order(self, cursor: int) -> list[str]:
        """The scheduled queue first, then the rest by descending weight."""
        first = self._schedule[cursor % len(self._schedule)]
        rest = sorted((q for q in self.weights if q != first), key=lambda q: -self.weights[q])
        return [first, *rest]

    async def run_once(self, worker_id: str, cursor: int = 0) -> bool:
        """Claim and execute at most one task. Returns True if one ran."""
        for queue in self._queue_order(cursor):
            async with self.session_factory() as db:
                task = await claim_next(db, queue, worker_id, self.lease_seconds)
            if task is not None:
                await self._execute(task)
                return True
        return False

    async def _execute(self, task: Task) -> None:
        log = logger.bind(task_id=str(task.id), task_name=task.name, attempt=task.attempts)
        handler = self._handlers.get(task.name)

        ctx = TaskContext(
            task_id=task.id,
            name=task.name,
            attempt=task.attempts,
            session_factory=self.session_factory,
        )
        if self._stopping.is_set():
            ctx.cancelled.set()
        key = str(task.id)
        self._in_flight[key] = ctx
        try:
            if handler is None:
                msg = f"No handler registered for {task.name!r}"
                raise PermanentTaskError(msg)
            await asyncio.wait_for(handler(ctx, task.payload), timeout=self.timeout_seconds)
        except PermanentTaskError as e:
            log.error("task_failed_permanently", error=str(e))
            async with self.session_factory() as db:
                await mark_failed(db, task, str(e))
        except Exception as e:  # RetryableTaskError, timeouts and anything unexpected
            await self._retry_or_fail(task, e, log)
        else:
            async with self.session_factory() as db:
                await complete(db, task.id)
            log.info("task_completed")
        finally:
            self._in_flight.pop(key, None)

    async def _retry_or_fail(self, task: Task, exc: BaseException, log: structlog.stdlib.BoundLogger) -> None:
        error = f"{type(exc).__name__}: {exc}"
        async with self.session_factory() as db:
            if task.attempts >= task.max_attempts:
                await mark_failed(db, task, error)
                log.error("task_attempts_exhausted", error=error)
                return
            run_at = await schedule_retry(db, task, error)
        log.warning("task_retry_scheduled", error=error, run_at=run_at.isoformat())
