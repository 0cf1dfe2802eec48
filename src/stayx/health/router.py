"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends

from stayx.config import Settings
from stayx.dependencies import get_app_settings, get_storage
from stayx.redis_client import is_redis_configured, ping_redis
from stayx.storage.base import Storage

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    storage: Storage = Depends(get_storage),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: storage, plus Redis when configured."""
    checks: dict[str, object] = {}

    try:
        await storage.count_users()
        checks["storage"] = "ok"
    except Exception as exc:
        checks["storage"] = f"error: {exc}"

    if is_redis_configured():
        checks["redis"] = await ping_redis()

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> dict[str, str]:
    """Return API version and environment."""
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
