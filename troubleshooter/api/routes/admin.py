"""
Snapshot cache administration routes.
"""

from fastapi import APIRouter, status
import structlog

from troubleshooter.api.dependencies import GraphCacheDep
from troubleshooter.api.schemas import CacheCleanupResponse, CacheStatsResponse

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin/cache", tags=["admin"])


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(cache: GraphCacheDep):
    return CacheStatsResponse(**cache.stats().to_dict())


@router.post("/cleanup", response_model=CacheCleanupResponse)
async def cache_cleanup(cache: GraphCacheDep):
    """Drop expired snapshots now instead of waiting for the periodic sweep."""
    removed = cache.cleanup()
    log.info("graph_cache_cleanup", removed=removed)
    return CacheCleanupResponse(removed=removed)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def cache_clear(cache: GraphCacheDep):
    cache.clear()
    log.info("graph_cache_cleared")
