"""Worker pool tests: scheduling, dispatch, retries and shutdown."""

import asyncio
from collections import Counter

from sqlalchemy import select

from litpad.database import get_session_factory
from litpad.db.base import utcnow
from litpad.db.models import Task
from litpad.tasks.queue import (
    CRITICAL,
    LOW,
    PRIORITY_WEIGHTS,
    STATUS_FAILED,
    STATUS_PENDING,
    PermanentTaskError,
    RetryableTaskError,
    enqueue,
)
from litpad.tasks.worker import TaskContext, WorkerPool, weighted_schedule


class TestWeightedSchedule:
    def test_slots_follow_weights(self) -> None:
        schedule = weighted_schedule(PRIORITY_WEIGHTS)
        assert len(schedule) == 10
        assert Counter(schedule) == {"critical": 6, "default": 3, "low": 1}

    def test_heaviest_first_and_interleaved(self) -> None:
        schedule = weighted_schedule(PRIORITY_WEIGHTS)
        assert schedule[0] == "critical"
        runs = "".join("c" if q == "critical" else "." for q in schedule).split(".")
        assert max(len(run) for run in runs) <= 2


async def _all_tasks(db_session) -> list[Task]:
    await db_session.commit()
    result = await db_session.execute(select(Task).execution_options(populate_existing=True))
    return list(result.scalars().all())


class TestRunOnce:
    async def test_success_deletes_task(self, db_session) -> None:
        seen: list[tuple[str, bytes, int]] = []

        async def handler(ctx: TaskContext, payload: bytes) -> None:
            seen.append((ctx.name, payload, ctx.attempt))

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("echo", handler)
        await enqueue(db_session, "echo", b"hi", priority=CRITICAL)
        await db_session.commit()

        assert await pool.run_once("w-1")
        assert seen == [("echo", b"hi", 1)]
        assert await _all_tasks(db_session) == []
        assert not await pool.run_once("w-1")

    async def test_falls_through_to_low(self, db_session) -> None:
        ran: list[str] = []

        async def handler(ctx: TaskContext, payload: bytes) -> None:
            ran.append(ctx.name)

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("chore", handler)
        await enqueue(db_session, "chore", b"", priority=LOW)
        await db_session.commit()

        assert await pool.run_once("w-1", cursor=0)
        assert ran == ["chore"]

    async def test_retryable_error_reschedules(self, db_session) -> None:
        async def flaky(ctx: TaskContext, payload: bytes) -> None:
            raise RetryableTaskError("smtp down")

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("flaky", flaky)
        await enqueue(db_session, "flaky", b"")
        await db_session.commit()

        assert await pool.run_once("w-1")
        [task] = await _all_tasks(db_session)
        assert task.status == STATUS_PENDING
        assert task.attempts == 1
        assert task.leased_until is None
        assert task.run_at > utcnow()
        assert "smtp down" in task.last_error

    async def test_unexpected_error_is_retried(self, db_session) -> None:
        async def broken(ctx: TaskContext, payload: bytes) -> None:
            raise KeyError("boom")

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("broken", broken)
        await enqueue(db_session, "broken", b"")
        await db_session.commit()

        await pool.run_once("w-1")
        [task] = await _all_tasks(db_session)
        assert task.status == STATUS_PENDING
        assert task.last_error.startswith("KeyError")

    async def test_permanent_error_fails(self, db_session) -> None:
        async def doomed(ctx: TaskContext, payload: bytes) -> None:
            raise PermanentTaskError("bad payload")

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("doomed", doomed)
        await enqueue(db_session, "doomed", b"")
        await db_session.commit()

        await pool.run_once("w-1")
        [task] = await _all_tasks(db_session)
        assert task.status == STATUS_FAILED
        assert task.last_error == "bad payload"

    async def test_attempts_exhausted(self, db_session) -> None:
        async def flaky(ctx: TaskContext, payload: bytes) -> None:
            raise RetryableTaskError("still down")

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("flaky", flaky)
        await enqueue(db_session, "flaky", b"", max_attempts=1)
        await db_session.commit()

        await pool.run_once("w-1")
        [task] = await _all_tasks(db_session)
        assert task.status == STATUS_FAILED

    async def test_unregistered_task_fails(self, db_session) -> None:
        pool = WorkerPool(get_session_factory(), concurrency=1)
        await enqueue(db_session, "mystery", b"")
        await db_session.commit()

        await pool.run_once("w-1")
        [task] = await _all_tasks(db_session)
        assert task.status == STATUS_FAILED
        assert "No handler registered" in task.last_error


class TestLifecycle:
    async def test_start_drain_stop(self, db_session, settings, monkeypatch) -> None:
        monkeypatch.setattr(settings, "task_poll_interval_seconds", 0.01)
        done: list[bytes] = []

        async def handler(ctx: TaskContext, payload: bytes) -> None:
            done.append(payload)

        for i in range(5):
            await enqueue(db_session, "echo", str(i).encode(), priority=CRITICAL)
        await db_session.commit()

        pool = WorkerPool(get_session_factory(), concurrency=1)
        pool.register("echo", handler)
        await pool.start()
        assert pool.running

        for _ in range(200):
            if len(done) == 5:
                break
            await asyncio.sleep(0.01)
        await pool.stop()

        assert sorted(done) == [b"0", b"1", b"2", b"3", b"4"]
        assert not pool.running
