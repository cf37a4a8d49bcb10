"""
Health check endpoint.

GET /health — checks MongoDB and (if configured) Redis connectivity.
Rules:
- MongoDB failure → "unhealthy" (503); OTP challenges and profiles live there.
- Redis failure → "degraded" (200). Redis only backs client session storage.
- Redis not configured → reported, but does not change the status.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.warning("health_mongodb_failed", error=str(e))
        checks["mongodb"] = "error"
        overall = "unhealthy"

    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        checks["redis"] = "not_configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            log.warning("health_redis_failed", error=str(e))
            checks["redis"] = "error"
            if overall == "healthy":
                overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
