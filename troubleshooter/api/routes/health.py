"""
Health check endpoints.

Provides system health information for monitoring.
"""

from fastapi import APIRouter, HTTPException
import structlog

from troubleshooter import __version__
from troubleshooter.api.dependencies import GraphCacheDep
from troubleshooter.core.config import settings
from troubleshooter.persistence.database import check_database_health

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(cache: GraphCacheDep):
    """
    Health check endpoint.

    Returns:
        System health status including database connectivity and cache metrics.
    """
    db_health = await check_database_health()

    overall_status = "healthy" if db_health["status"] == "healthy" else "unhealthy"

    return {
        "status": overall_status,
        "version": __version__,
        "debug": settings.debug,
        "components": {
            "database": db_health,
            "graph_cache": cache.stats().to_dict(),
        },
    }


@router.get("/health/live")
async def liveness():
    """
    Kubernetes-style liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness():
    """
    Kubernetes-style readiness probe.

    Returns 200 if the application is ready to serve requests.
    """
    db_health = await check_database_health()

    if db_health["status"] != "healthy":
        log.warning("readiness_check_failed", error=db_health.get("error"))
        raise HTTPException(status_code=503, detail="Database not ready")

    return {"status": "ready"}
