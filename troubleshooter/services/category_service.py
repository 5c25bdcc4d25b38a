"""
Category ("issue") management.

A category is a self-contained interview rooted at its ``<category>_start``
question and linked into the global issue menu by one connection from the
global start node. Activation state lives on the nodes: toggling a category
cascades to all of its nodes and to that menu connection.
"""

from typing import Dict, List, Optional

import structlog

from troubleshooter.core.config import GraphConfig, troubleshoot_config
from troubleshooter.core.exceptions import (
    CategoryNotFoundError,
    DuplicateCategoryError,
    MissingSeedError,
    ValidationError,
)
from troubleshooter.domain.models.graph import CategorySummary, Node, NodeType
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.persistence.repositories.session_repo import SessionRepository
from troubleshooter.services.activation_validator import ActivationValidator
from troubleshooter.services.graph_snapshot_service import GraphSnapshotService

log = structlog.get_logger(__name__)


class CategoryService:
    """Creates, edits, toggles and deletes categories."""

    def __init__(
        self,
        graph_repo: GraphRepository,
        snapshots: GraphSnapshotService,
        validator: Optional[ActivationValidator] = None,
        session_repo: Optional[SessionRepository] = None,
        graph_config: Optional[GraphConfig] = None,
    ):
        self.graph_repo = graph_repo
        self.snapshots = snapshots
        self.validator = validator or ActivationValidator(graph_repo)
        self.session_repo = session_repo
        self.graph_config = graph_config or troubleshoot_config.graph

    async def list_categories(self) -> List[CategorySummary]:
        start = await self.graph_repo.get_node_by_semantic_id(
            self.graph_config.global_start_semantic_id, active_only=False
        )
        return await self.graph_repo.list_categories(
            start.id if start else "", self.graph_config.start_suffix
        )

    async def create_category(
        self,
        name: str,
        category: str,
        root_question_text: str,
        display_category: Optional[str] = None,
    ) -> CategorySummary:
        """
        Create an inactive category with its root question and menu entry.

        Raises:
            ValidationError: Empty name, category or root question text
            DuplicateCategoryError: Category already has nodes
        """
        errors = [
            {"field": field, "message": f"{label} is required"}
            for field, label, value in (
                ("name", "Issue name", name),
                ("category", "Category", category),
                ("root_question_text", "Root question text", root_question_text),
            )
            if not value or not value.strip()
        ]
        if errors:
            raise ValidationError(errors)

        if await self.graph_repo.category_exists(category):
            raise DuplicateCategoryError(f"Category '{category}' already exists")

        start = await self._global_start()

        try:
            root = await self.graph_repo.create_node(
                category=category,
                node_type=NodeType.QUESTION,
                text=root_question_text,
                semantic_id=self.graph_config.start_semantic_id(category),
                display_category=display_category,
                is_active=False,
                commit=False,
            )
            await self.graph_repo.create_connection(
                from_node_id=start.id,
                to_node_id=root.id,
                label=name,
                order_index=await self.graph_repo.count_outgoing(start.id),
                is_active=False,
                commit=False,
            )
            await self.graph_repo.commit()
        except Exception:
            await self.graph_repo.rollback()
            raise

        self.snapshots.invalidate(category, start.category)
        log.info("category_created", category=category, name=name, root_node_id=root.id)

        return await self._summarize(root)

    async def update_category(
        self,
        category: str,
        name: Optional[str] = None,
        display_category: Optional[str] = None,
    ) -> CategorySummary:
        """Rename the category's menu entry and/or relabel its display group."""
        if name is not None and not name.strip():
            raise ValidationError.single("name", "Issue name cannot be empty")

        root = await self._root(category)
        start = await self._global_start()

        try:
            if name is not None:
                edge = await self.graph_repo.find_connection_between(start.id, root.id)
                if edge is not None:
                    await self.graph_repo.update_connection(edge.id, label=name, commit=False)

            if display_category is not None:
                await self.graph_repo.set_category_display(
                    category, display_category, commit=False
                )
            await self.graph_repo.commit()
        except Exception:
            await self.graph_repo.rollback()
            raise

        self.snapshots.invalidate(category, start.category)
        log.info(
            "category_updated",
            category=category,
            name=name,
            display_category=display_category,
        )

        return await self._summarize(await self._root(category))

    async def toggle_category(self, category: str, force: bool = False) -> CategorySummary:
        """
        Flip a category between live and hidden.

        Turning a category on without ``force`` is refused while any of its
        Question nodes has no active outgoing connection. Turning it off, or
        forcing, always succeeds.

        Raises:
            CategoryNotFoundError: Category has no nodes
            ValidationError: Activation blocked by dead-end questions
        """
        root = await self._root(category)
        new_status = not root.is_active

        if new_status and not force:
            await self.validator.ensure_activatable(category)

        start = await self.graph_repo.get_node_by_semantic_id(
            self.graph_config.global_start_semantic_id, active_only=False
        )

        try:
            await self.graph_repo.set_category_active(category, new_status, commit=False)
            if start is not None:
                edge = await self.graph_repo.find_connection_between(start.id, root.id)
                if edge is not None:
                    await self.graph_repo.update_connection(
                        edge.id, is_active=new_status, commit=False
                    )
            await self.graph_repo.commit()
        except Exception:
            await self.graph_repo.rollback()
            raise

        self.snapshots.invalidate(category, start.category if start else "")
        log.info("category_toggled", category=category, new_status=new_status, forced=force)

        return await self._summarize(await self._root(category))

    async def delete_category(
        self, category: str, delete_sessions: bool = False
    ) -> Dict[str, int]:
        """
        Permanently delete a category's nodes and every edge touching them.

        Returns:
            Counts of deleted nodes and sessions
        """
        if not await self.graph_repo.category_exists(category):
            raise CategoryNotFoundError("Issue not found")

        nodes_deleted = await self.graph_repo.delete_category(category)

        sessions_deleted = 0
        if delete_sessions and self.session_repo is not None:
            sessions_deleted = await self.session_repo.delete_by_category(category)

        start = await self.graph_repo.get_node_by_semantic_id(
            self.graph_config.global_start_semantic_id, active_only=False
        )
        self.snapshots.invalidate(category, start.category if start else "")

        log.info(
            "category_removed",
            category=category,
            nodes_deleted=nodes_deleted,
            sessions_deleted=sessions_deleted,
        )
        return {"deleted_count": nodes_deleted, "sessions_deleted": sessions_deleted}

    # ==================== HELPERS ====================

    async def _root(self, category: str) -> Node:
        root = await self.graph_repo.get_category_root(
            category, self.graph_config.start_semantic_id(category)
        )
        if root is None:
            raise CategoryNotFoundError("Issue not found")
        return root

    async def _global_start(self) -> Node:
        start = await self.graph_repo.get_node_by_semantic_id(
            self.graph_config.global_start_semantic_id, active_only=False
        )
        if start is None:
            raise MissingSeedError("Global start node not found; database seed is missing")
        return start

    async def _summarize(self, root: Node) -> CategorySummary:
        name = root.category
        start = await self.graph_repo.get_node_by_semantic_id(
            self.graph_config.global_start_semantic_id, active_only=False
        )
        if start is not None:
            edge = await self.graph_repo.find_connection_between(start.id, root.id)
            if edge is not None:
                name = edge.label

        return CategorySummary(
            category=root.category,
            name=name,
            display_category=root.display_category,
            root_node_id=root.id,
            is_active=root.is_active,
            node_count=await self.graph_repo.count_category_nodes(root.category),
            created_at=root.created_at,
            updated_at=root.updated_at,
        )
