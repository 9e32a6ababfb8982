"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from litpad.auth.router import router as auth_router
from litpad.config import get_settings
from litpad.database import close_db, get_engine, get_session_factory, init_db
from litpad.db.base import Base
from litpad.db.seed import seed_catalog
from litpad.gifts.router import router as gifts_router
from litpad.health.router import router as health_router
from litpad.jobs.reminders import ReminderDriver
from litpad.middleware import setup_middleware
from litpad.redis_client import close_redis, init_redis
from litpad.social.notification_router import router as notifications_router
from litpad.users.router import router as profiles_router
from litpad.wallet.router import router as wallet_router
from litpad.workers.registry import create_worker_pool
from litpad.ws.manager import hub
from litpad.ws.router import router as ws_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.is_testing:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    if settings.seed_on_startup:
        async with get_session_factory()() as db:
            await seed_catalog(db)

    pool = driver = None
    if settings.run_background_jobs and not settings.is_testing:
        pool = create_worker_pool(get_session_factory())
        driver = ReminderDriver(get_session_factory())
        await pool.start()
        driver.start()

    yield

    if driver is not None:
        await driver.stop()
    if pool is not None:
        await pool.stop()
    await hub.close_all()
    await close_db()
    await close_redis()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LitPad API",
        description="Backend API for LitPad: gifts, wallet, notifications and subscriptions",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(notifications_router)
    app.include_router(gifts_router)
    app.include_router(wallet_router)
    app.include_router(ws_router)

    return app


app = create_app()
