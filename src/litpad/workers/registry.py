"""Task handler registry shared by the API process and the standalone runner."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litpad.email.tasks import SEND_EMAIL, send_email_task
from litpad.tasks.worker import WorkerPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

HANDLERS = {
    SEND_EMAIL: send_email_task,
}


def create_worker_pool(session_factory: async_sessionmaker[AsyncSession]) -> WorkerPool:
    """A pool with every known task handler registered."""
    pool = WorkerPool(session_factory)
    for name, handler in HANDLERS.items():
        pool.register(name, handler)
    return pool
