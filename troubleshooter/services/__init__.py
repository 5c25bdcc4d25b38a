"""Application services: session engine, graph editing and caching."""

from troubleshooter.services.activation_validator import ActivationValidator
from troubleshooter.services.category_service import CategoryService
from troubleshooter.services.graph_edit_service import GraphEditService
from troubleshooter.services.graph_snapshot_service import (
    GraphSnapshotService,
    graph_cache_key,
)
from troubleshooter.services.session_reaper import SessionReaper
from troubleshooter.services.session_service import SessionService
from troubleshooter.services.ttl_cache import CacheStats, TTLCache

__all__ = [
    "ActivationValidator",
    "CacheStats",
    "CategoryService",
    "GraphEditService",
    "GraphSnapshotService",
    "SessionReaper",
    "SessionService",
    "TTLCache",
    "graph_cache_key",
]
