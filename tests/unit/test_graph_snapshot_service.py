"""Tests for cached category graph snapshots."""

import pytest

from troubleshooter.core.exceptions import CategoryNotFoundError
from troubleshooter.services.graph_snapshot_service import graph_cache_key


async def test_snapshot_contains_active_nodes_and_edges(snapshots, brush_graph):
    graph = await snapshots.get_category_graph("brush")

    assert graph.category == "brush"
    assert {n.id for n in graph.nodes} == {
        brush_graph.root.id,
        brush_graph.replace.id,
        brush_graph.motor.id,
    }
    assert {c.id for c in graph.connections} == {brush_graph.yes.id, brush_graph.no.id}


async def test_snapshot_is_cached(snapshots, cache, graph_repo, brush_graph):
    await snapshots.get_category_graph("brush")
    assert cache.get(graph_cache_key("brush")) is not None

    # A write that bypasses invalidation is not visible until the entry goes
    await graph_repo.soft_delete_node(brush_graph.motor.id)
    cached = await snapshots.get_category_graph("brush")
    assert len(cached.nodes) == 3

    snapshots.invalidate("brush")
    fresh = await snapshots.get_category_graph("brush")
    assert len(fresh.nodes) == 2


async def test_cached_snapshot_equals_fresh(snapshots, brush_graph):
    fresh = await snapshots.get_category_graph("brush")
    cached = await snapshots.get_category_graph("brush")

    assert cached == fresh


async def test_unknown_category(snapshots):
    with pytest.raises(CategoryNotFoundError):
        await snapshots.get_category_graph("pump")


async def test_inactive_category_has_no_snapshot(snapshots, graph_repo, brush_graph):
    await graph_repo.set_category_active("brush", False)

    with pytest.raises(CategoryNotFoundError):
        await snapshots.get_category_graph("brush")


def test_cache_key():
    assert graph_cache_key("brush") == "graph_brush"
