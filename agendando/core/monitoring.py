"""Health checks"""
import logging

import redis.asyncio as redis

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from agendando.config.database import get_db
from agendando.config.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": settings.APP_NAME}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Health check including database and Redis reachability"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {e}"

    try:
        # Celery owns the broker connections; the probe uses a throwaway client
        redis_client = redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        await redis_client.ping()
        checks["redis"] = "healthy"
        await redis_client.aclose()
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        checks["redis"] = f"unhealthy: {e}"

    checks["overall"] = (
        "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"
    )
    return checks
