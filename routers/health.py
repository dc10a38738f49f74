"""
Health check endpoints.
"""

import os
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis

from config import settings

router = APIRouter()


def _media_root_status() -> str:
    root = Path(settings.MEDIA_ROOT)
    if not root.is_dir():
        return "missing"
    if not os.access(root, os.W_OK):
        return "read-only"
    return "up"


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
        "media_root": _media_root_status(),
    }
    if health_status["media_root"] != "up":
        health_status["status"] = "degraded"

    # Check database connection
    try:
        from database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    # Check Redis connection (rate limiting falls back to local counters)
    try:
        r = redis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness check."""
    failing = []
    if _media_root_status() != "up":
        failing.append("MEDIA_ROOT")

    if failing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "failing": failing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness check."""
    return {"alive": True}
