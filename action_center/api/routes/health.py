from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from action_center.core.config import get_settings
from action_center.db.redis import ping_redis

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint for load balancer.

    Returns 503 during graceful shutdown so the balancer stops routing traffic.
    """
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(
            status_code=503,
            content={"status": "shutting_down", "service": "action-center"},
        )
    return {"status": "healthy", "service": "action-center"}


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness check - verifies the store (and Redis, when configured) is available."""
    checks = {"store": getattr(request.app.state, "action_center", None) is not None}

    if get_settings().store_backend == "redis":
        checks["redis"] = await ping_redis()

    all_healthy = all(checks.values())
    status_code = 200 if all_healthy else 503

    return JSONResponse(
        status_code=status_code,
        content={"status": "ready" if all_healthy else "degraded", "checks": checks},
    )
