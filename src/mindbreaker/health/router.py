"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.config import get_settings
from mindbreaker.database import get_session
from mindbreaker.redis_client import get_redis_dep

router = APIRouter()


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


async def _check_redis(redis: object | None) -> str:
    if redis is None:
        return "error: not initialized"
    try:
        await redis.ping()  # type: ignore[attr-defined]
    except Exception as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness: the process is up."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
) -> dict[str, object]:
    """Readiness: database and Redis both answer. Degraded is still a 200."""
    checks = {
        "database": await _check_database(db),
        "redis": await _check_redis(redis),
    }
    ready = all(v == "ok" for v in checks.values())
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
