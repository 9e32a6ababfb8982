"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from litpad.config import get_settings
from litpad.database import get_session
from litpad.db.models import Task
from litpad.redis_client import get_redis
from litpad.ws.manager import hub

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, object]:
    """Liveness probe, with the notification hub's connection counts."""
    return {"status": "healthy", "sockets": hub.get_stats()}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: task table round trip, plus Redis when configured."""
    checks: dict[str, object] = {}
    pending: int | None = None

    try:
        result = await db.execute(select(func.count()).select_from(Task).where(Task.status == "pending"))
        pending = result.scalar_one()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    if get_settings().redis_url:
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks, "pending_tasks": pending}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
