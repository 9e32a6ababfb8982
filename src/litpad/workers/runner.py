"""Standalone runner for the task worker pool and the reminder driver.

Drains the task queue (email delivery) and ticks the subscription reminder
job until SIGINT/SIGTERM.

Usage: python -m litpad.workers.runner
"""

from __future__ import annotations

import asyncio
import signal

import structlog

from litpad.config import get_settings
from litpad.database import close_db, get_session_factory, init_db
from litpad.jobs.reminders import ReminderDriver
from litpad.middleware.logging import setup_logging
from litpad.workers.registry import create_worker_pool

logger = structlog.get_logger()


async def main() -> None:
    """Run the worker pool and reminder driver until signalled."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    session_factory = get_session_factory()
    pool = create_worker_pool(session_factory)
    driver = ReminderDriver(session_factory)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await pool.start()
    driver.start()
    logger.info("runner_started", environment=settings.environment)

    try:
        await stop.wait()
    finally:
        await driver.stop()
        await pool.stop()
        await close_db()
        logger.info("runner_stopped")


if __name__ == "__main__":
    asyncio.run(main())
