"""Tests for node and connection editing."""

import pytest

from troubleshooter.core.exceptions import (
    ConnectionNotFoundError,
    NodeNotFoundError,
    ValidationError,
)
from troubleshooter.domain.models.graph import NodeType
from troubleshooter.services.graph_edit_service import GraphEditService
from troubleshooter.services.graph_snapshot_service import graph_cache_key


@pytest.fixture
def service(graph_repo, snapshots):
    return GraphEditService(graph_repo, snapshots)


@pytest.fixture
async def warm_brush(snapshots, cache, brush_graph):
    """brush_graph with its snapshot already cached."""
    await snapshots.get_category_graph("brush")
    assert cache.get(graph_cache_key("brush")) is not None
    return brush_graph


class TestNodes:
    async def test_create_node_invalidates_category(self, service, cache, warm_brush):
        node = await service.create_node(
            category="brush", node_type=NodeType.CONCLUSION, text="Clean commutator"
        )

        assert node.is_active is True
        assert cache.get(graph_cache_key("brush")) is None

    async def test_create_node_reports_all_errors(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_node(category="", node_type=NodeType.QUESTION, text=" ")

        assert [f["field"] for f in exc_info.value.fields] == ["category", "text"]

    async def test_update_node(self, service, cache, warm_brush):
        node = await service.update_node(
            warm_brush.motor.id, text="Check motor brushes?", position_x=42.0
        )

        assert node.text == "Check motor brushes?"
        assert node.position_x == 42.0
        assert cache.get(graph_cache_key("brush")) is None

    async def test_update_node_none_text_untouched(self, service, brush_graph):
        node = await service.update_node(brush_graph.motor.id, text=None)

        assert node.text == "Check motor?"
        assert node.semantic_id == "brush_motor"

    async def test_update_node_clears_nullable_fields(self, service, brush_graph):
        await service.update_node(brush_graph.root.id, position_x=10.0, position_y=20.0)

        node = await service.update_node(
            brush_graph.root.id,
            semantic_id=None,
            display_category=None,
            position_x=None,
            position_y=None,
        )

        assert node.text == "Is brush worn?"
        assert node.semantic_id is None
        assert node.display_category is None
        assert node.position_x is None
        assert node.position_y is None

    async def test_update_node_blank_text(self, service, brush_graph):
        with pytest.raises(ValidationError):
            await service.update_node(brush_graph.motor.id, text="")

    async def test_delete_node_is_soft(self, service, graph_repo, cache, warm_brush):
        await service.delete_node(warm_brush.motor.id)

        assert (await graph_repo.get_node(warm_brush.motor.id)).is_active is False
        assert cache.get(graph_cache_key("brush")) is None
        with pytest.raises(NodeNotFoundError):
            await service.get_node(warm_brush.motor.id)

    async def test_get_node_with_connections(self, service, brush_graph):
        result = await service.get_node_with_connections(brush_graph.root.id)

        assert result.node.id == brush_graph.root.id
        assert [c.label for c in result.connections] == ["Yes", "No"]

    async def test_unknown_node(self, service):
        with pytest.raises(NodeNotFoundError):
            await service.update_node("nope", text="x")


class TestConnections:
    async def test_create_connection_invalidates_source_category(
        self, service, cache, warm_brush
    ):
        connection = await service.create_connection(
            from_node_id=warm_brush.motor.id,
            to_node_id=warm_brush.replace.id,
            label="Worn",
        )

        assert connection.from_node_id == warm_brush.motor.id
        assert cache.get(graph_cache_key("brush")) is None

    async def test_create_connection_reports_all_errors(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_connection(
                from_node_id="nope", to_node_id="nada", label=""
            )

        assert [f["field"] for f in exc_info.value.fields] == [
            "from_node_id",
            "to_node_id",
            "label",
        ]

    async def test_update_connection(self, service, cache, warm_brush):
        connection = await service.update_connection(
            warm_brush.no.id, label="Not worn", order_index=5
        )

        assert connection.label == "Not worn"
        assert connection.order_index == 5
        assert cache.get(graph_cache_key("brush")) is None

    async def test_update_connection_missing_target(self, service, brush_graph):
        with pytest.raises(ValidationError) as exc_info:
            await service.update_connection(brush_graph.no.id, to_node_id="nope")

        assert exc_info.value.fields[0]["field"] == "to_node_id"

    async def test_delete_connection(self, service, graph_repo, cache, warm_brush):
        await service.delete_connection(warm_brush.no.id)

        edges = await graph_repo.get_outgoing_edges(warm_brush.root.id)
        assert [e.id for e in edges] == [warm_brush.yes.id]
        assert cache.get(graph_cache_key("brush")) is None

    async def test_start_edge_change_invalidates_start_category(
        self, service, snapshots, cache, brush_graph
    ):
        await snapshots.get_category_graph("root")

        await service.update_connection(brush_graph.menu.id, label="Brushes")

        assert cache.get(graph_cache_key("root")) is None

    async def test_unknown_connection(self, service):
        with pytest.raises(ConnectionNotFoundError):
            await service.delete_connection("nope")

    async def test_list_connections_filters(self, service, brush_graph):
        into_root = await service.list_connections(to_node_id=brush_graph.root.id)

        assert [c.id for c in into_root] == [brush_graph.menu.id]
