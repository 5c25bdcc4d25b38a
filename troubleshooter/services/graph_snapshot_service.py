"""
Category graph snapshots for the visual editor.

Snapshots are served cache-aside from the shared TTLCache under the key
``graph_<category>``. Every write path that changes a category's nodes or
edges must call ``invalidate`` for that category.
"""

import structlog

from troubleshooter.core.exceptions import CategoryNotFoundError
from troubleshooter.domain.models.graph import CategoryGraph
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.services.ttl_cache import TTLCache

log = structlog.get_logger(__name__)


def graph_cache_key(category: str) -> str:
    return f"graph_{category}"


class GraphSnapshotService:
    """Builds and caches the full active node/edge set of a category."""

    def __init__(self, graph_repo: GraphRepository, cache: TTLCache):
        self.graph_repo = graph_repo
        self.cache = cache

    async def get_category_graph(self, category: str) -> CategoryGraph:
        """
        Get every active node of a category and every active edge leaving them.

        Raises:
            CategoryNotFoundError: If the category has no active nodes
        """
        key = graph_cache_key(category)
        cached = self.cache.get(key)
        if cached is not None:
            log.debug("graph_cache_hit", category=category)
            return CategoryGraph.model_validate(cached)

        log.debug("graph_cache_miss", category=category)

        nodes = await self.graph_repo.list_category_nodes(category, active_only=True)
        if not nodes:
            raise CategoryNotFoundError(f"Issue category '{category}' not found")

        connections = await self.graph_repo.list_category_connections(category)
        graph = CategoryGraph(category=category, nodes=nodes, connections=connections)

        self.cache.set(key, graph.model_dump(mode="json"))
        log.info(
            "graph_snapshot_built",
            category=category,
            node_count=len(nodes),
            connection_count=len(connections),
        )
        return graph

    def invalidate(self, *categories: str) -> None:
        """Drop cached snapshots of the given categories."""
        for category in {c for c in categories if c}:
            self.cache.invalidate(graph_cache_key(category))
            log.debug("graph_cache_invalidated", category=category)
