"""Tests for category (issue) management."""

import pytest

from troubleshooter.core.config import GraphConfig
from troubleshooter.core.exceptions import (
    CategoryNotFoundError,
    DuplicateCategoryError,
    ValidationError,
)
from troubleshooter.domain.models.session import Session
from troubleshooter.services.activation_validator import ActivationValidator
from troubleshooter.services.category_service import CategoryService
from troubleshooter.services.graph_snapshot_service import graph_cache_key


@pytest.fixture
def service(graph_repo, session_repo, snapshots):
    return CategoryService(
        graph_repo=graph_repo,
        snapshots=snapshots,
        validator=ActivationValidator(graph_repo),
        session_repo=session_repo,
        graph_config=GraphConfig(),
    )


class TestCreate:
    async def test_create_category(self, service, graph_repo):
        summary = await service.create_category(
            name="Pump failures",
            category="pump",
            root_question_text="Is the pump running?",
            display_category="Hydraulics",
        )

        assert summary.category == "pump"
        assert summary.name == "Pump failures"
        assert summary.is_active is False
        assert summary.node_count == 1

        root = await graph_repo.get_node(summary.root_node_id)
        assert root.semantic_id == "pump_start"
        assert root.is_active is False

        start = await graph_repo.get_node_by_semantic_id("start")
        edge = await graph_repo.find_connection_between(start.id, root.id)
        assert edge.label == "Pump failures"
        assert edge.is_active is False

    async def test_start_edges_appended_in_order(self, service, graph_repo, brush_graph):
        summary = await service.create_category(
            name="Pump failures", category="pump", root_question_text="Running?"
        )

        edge = await graph_repo.find_connection_between(
            brush_graph.start.id, summary.root_node_id
        )
        assert edge.order_index == 1

    async def test_duplicate_category(self, service, brush_graph):
        with pytest.raises(DuplicateCategoryError):
            await service.create_category(
                name="Brush again", category="brush", root_question_text="?"
            )

    async def test_all_missing_fields_reported(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_category(name="", category=" ", root_question_text="")

        assert [f["field"] for f in exc_info.value.fields] == [
            "name",
            "category",
            "root_question_text",
        ]

    async def test_listed_after_create(self, service):
        await service.create_category(
            name="Pump failures", category="pump", root_question_text="Running?"
        )

        categories = await service.list_categories()

        assert [c.category for c in categories] == ["pump"]
        assert categories[0].name == "Pump failures"

    async def test_create_invalidates_menu_snapshot(self, service, snapshots, cache):
        await snapshots.get_category_graph("root")

        await service.create_category(
            name="Pump failures", category="pump", root_question_text="Running?"
        )

        assert cache.get(graph_cache_key("root")) is None


class TestUpdate:
    async def test_rename_and_regroup(self, service, graph_repo, brush_graph):
        summary = await service.update_category(
            "brush", name="Worn brushes", display_category="Electrical"
        )

        assert summary.name == "Worn brushes"
        assert summary.display_category == "Electrical"
        motor = await graph_repo.get_node(brush_graph.motor.id)
        assert motor.display_category == "Electrical"

    async def test_update_invalidates_snapshots(self, service, snapshots, cache, brush_graph):
        await snapshots.get_category_graph("brush")
        await snapshots.get_category_graph("root")

        await service.update_category("brush", name="Worn brushes")

        assert cache.get(graph_cache_key("brush")) is None
        assert cache.get(graph_cache_key("root")) is None

    async def test_update_rolls_back_on_failure(
        self, service, graph_repo, brush_graph, monkeypatch
    ):
        async def fail(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(graph_repo, "set_category_display", fail)

        with pytest.raises(RuntimeError):
            await service.update_category(
                "brush", name="Worn brushes", display_category="Electrical"
            )

        menu = await graph_repo.get_connection(brush_graph.menu.id)
        assert menu.label == "Brush issues"

    async def test_update_unknown(self, service):
        with pytest.raises(CategoryNotFoundError):
            await service.update_category("pump", name="x")

    async def test_blank_name_rejected(self, service, brush_graph):
        with pytest.raises(ValidationError):
            await service.update_category("brush", name="  ")


class TestToggle:
    async def test_deactivate_cascades(self, service, graph_repo, brush_graph):
        summary = await service.toggle_category("brush")

        assert summary.is_active is False
        assert await graph_repo.list_category_nodes("brush") == []
        menu = await graph_repo.get_connection(brush_graph.menu.id)
        assert menu.is_active is False
        # Edges inside the category are left alone
        yes = await graph_repo.get_connection(brush_graph.yes.id)
        assert yes.is_active is True

    async def test_activation_blocked_by_dead_end(self, service, graph_repo, brush_graph):
        await service.toggle_category("brush")

        with pytest.raises(ValidationError) as exc_info:
            await service.toggle_category("brush")

        assert f"nodes.{brush_graph.motor.id}" in {
            f["field"] for f in exc_info.value.fields
        }
        root = await graph_repo.get_node(brush_graph.root.id)
        assert root.is_active is False

    async def test_forced_activation(self, service, graph_repo, brush_graph):
        await service.toggle_category("brush")

        summary = await service.toggle_category("brush", force=True)

        assert summary.is_active is True
        menu = await graph_repo.get_connection(brush_graph.menu.id)
        assert menu.is_active is True

    async def test_activation_of_complete_category(self, service, graph_repo):
        summary = await service.create_category(
            name="Pump failures", category="pump", root_question_text="Running?"
        )
        done = await graph_repo.create_node(
            category="pump", node_type="conclusion", text="Call service", is_active=False
        )
        await graph_repo.create_connection(summary.root_node_id, done.id, "No")

        toggled = await service.toggle_category("pump")

        assert toggled.is_active is True
        assert (await graph_repo.get_node(done.id)).is_active is True

    async def test_toggle_invalidates_snapshots(self, service, snapshots, cache, brush_graph):
        await snapshots.get_category_graph("brush")
        await snapshots.get_category_graph("root")

        await service.toggle_category("brush")

        assert cache.get(graph_cache_key("brush")) is None
        assert cache.get(graph_cache_key("root")) is None

    async def test_toggle_unknown(self, service):
        with pytest.raises(CategoryNotFoundError):
            await service.toggle_category("pump")


class TestDelete:
    async def test_delete_keeps_sessions_by_default(
        self, service, session_repo, graph_repo, brush_graph
    ):
        await session_repo.create(Session(session_id="s-1", category="brush"))

        result = await service.delete_category("brush")

        assert result == {"deleted_count": 3, "sessions_deleted": 0}
        assert await graph_repo.get_connection(brush_graph.menu.id) is None
        assert await session_repo.get("s-1") is not None

    async def test_delete_with_sessions(self, service, session_repo, brush_graph):
        await session_repo.create(Session(session_id="s-1", category="brush"))

        result = await service.delete_category("brush", delete_sessions=True)

        assert result["sessions_deleted"] == 1
        assert await session_repo.get("s-1") is None

    async def test_delete_invalidates_snapshots(self, service, snapshots, cache, brush_graph):
        await snapshots.get_category_graph("brush")
        await snapshots.get_category_graph("root")

        await service.delete_category("brush")

        assert cache.get(graph_cache_key("brush")) is None
        assert cache.get(graph_cache_key("root")) is None

    async def test_delete_unknown(self, service):
        with pytest.raises(CategoryNotFoundError):
            await service.delete_category("pump")
