"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
import aiosqlite

from troubleshooter.core.config import settings, troubleshoot_config
from troubleshooter.persistence.database import get_db
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.persistence.repositories.session_repo import SessionRepository
from troubleshooter.services.activation_validator import ActivationValidator
from troubleshooter.services.category_service import CategoryService
from troubleshooter.services.graph_edit_service import GraphEditService
from troubleshooter.services.graph_snapshot_service import GraphSnapshotService
from troubleshooter.services.session_service import SessionService
from troubleshooter.services.ttl_cache import TTLCache


@lru_cache(maxsize=1)
def get_graph_cache() -> TTLCache:
    """Process-wide snapshot cache.

    Created once per process on first use. Tests swap in an isolated
    instance through ``app.dependency_overrides``.
    """
    return TTLCache(
        ttl_seconds=settings.graph_cache_ttl_seconds,
        max_size=settings.graph_cache_max_size,
    )


def get_session_repository() -> SessionRepository:
    """FastAPI dependency injection for SessionRepository.

    Each request gets a new repository with database path from settings.
    """
    return SessionRepository(str(settings.database_path))


async def get_graph_repository(
    db: aiosqlite.Connection = Depends(get_db),
) -> GraphRepository:
    """FastAPI dependency injection for GraphRepository.

    Uses the per-request database connection from get_db dependency.
    """
    return GraphRepository(db)


SessionRepoDep = Annotated[SessionRepository, Depends(get_session_repository)]
GraphRepoDep = Annotated[GraphRepository, Depends(get_graph_repository)]
GraphCacheDep = Annotated[TTLCache, Depends(get_graph_cache)]


def get_snapshot_service(
    graph_repo: GraphRepoDep, cache: GraphCacheDep
) -> GraphSnapshotService:
    return GraphSnapshotService(graph_repo, cache)


SnapshotServiceDep = Annotated[GraphSnapshotService, Depends(get_snapshot_service)]


def get_session_service(
    session_repo: SessionRepoDep, graph_repo: GraphRepoDep
) -> SessionService:
    """FastAPI dependency injection for SessionService."""
    return SessionService(
        session_repo=session_repo,
        graph_repo=graph_repo,
        graph_config=troubleshoot_config.graph,
        sessions_config=troubleshoot_config.sessions,
    )


def get_graph_edit_service(
    graph_repo: GraphRepoDep, snapshots: SnapshotServiceDep
) -> GraphEditService:
    return GraphEditService(graph_repo, snapshots)


def get_category_service(
    graph_repo: GraphRepoDep,
    session_repo: SessionRepoDep,
    snapshots: SnapshotServiceDep,
) -> CategoryService:
    """FastAPI dependency injection for CategoryService."""
    return CategoryService(
        graph_repo=graph_repo,
        snapshots=snapshots,
        validator=ActivationValidator(graph_repo),
        session_repo=session_repo,
        graph_config=troubleshoot_config.graph,
    )


# Type aliases for dependency injection
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
GraphEditServiceDep = Annotated[GraphEditService, Depends(get_graph_edit_service)]
CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]
