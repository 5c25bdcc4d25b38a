"""
Node and connection editing for the visual graph editor.

Field problems are collected and reported together. After every write the
snapshot of each category whose graph changed is invalidated: the node's
own category, and for a connection the category of its source node.
"""

from typing import Any, Dict, List, Optional

import structlog

from troubleshooter.core.exceptions import (
    ConnectionNotFoundError,
    NodeNotFoundError,
    ValidationError,
)
from troubleshooter.domain.models.graph import (
    Connection,
    Node,
    NodeType,
    NodeWithConnections,
)
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.services.graph_snapshot_service import GraphSnapshotService

log = structlog.get_logger(__name__)

# Node columns an explicit None may clear
_NULLABLE_NODE_FIELDS = ("semantic_id", "display_category", "position_x", "position_y")


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class GraphEditService:
    """CRUD over nodes and connections with snapshot invalidation."""

    def __init__(self, graph_repo: GraphRepository, snapshots: GraphSnapshotService):
        self.graph_repo = graph_repo
        self.snapshots = snapshots

    # ==================== NODES ====================

    async def list_nodes(
        self, category: Optional[str] = None, node_type: Optional[NodeType] = None
    ) -> List[Node]:
        return await self.graph_repo.list_nodes(category=category, node_type=node_type)

    async def get_node(self, node_id: str) -> Node:
        node = await self.graph_repo.get_node(node_id)
        if node is None or not node.is_active:
            raise NodeNotFoundError("Node not found")
        return node

    async def get_node_with_connections(self, node_id: str) -> NodeWithConnections:
        node = await self.get_node(node_id)
        connections = await self.graph_repo.get_outgoing_edges_with_targets(node_id)
        return NodeWithConnections(node=node, connections=connections)

    async def create_node(
        self,
        category: str,
        node_type: NodeType,
        text: str,
        semantic_id: Optional[str] = None,
        display_category: Optional[str] = None,
        position_x: Optional[float] = None,
        position_y: Optional[float] = None,
    ) -> Node:
        """
        Create an active node.

        Raises:
            ValidationError: Empty category and/or text
        """
        errors: List[Dict[str, str]] = []
        if _blank(category):
            errors.append({"field": "category", "message": "Category is required"})
        if _blank(text):
            errors.append({"field": "text", "message": "Text is required"})
        if errors:
            raise ValidationError(errors)

        node = await self.graph_repo.create_node(
            category=category,
            node_type=node_type,
            text=text,
            semantic_id=semantic_id,
            display_category=display_category,
            position_x=position_x,
            position_y=position_y,
        )
        self.snapshots.invalidate(node.category)
        return node

    async def update_node(self, node_id: str, **changes: Any) -> Node:
        """
        Apply a partial update.

        ``None`` clears semantic_id, display_category and the canvas position;
        for the other fields it leaves the value untouched.

        Raises:
            NodeNotFoundError: Unknown or inactive node
            ValidationError: Text set to blank
        """
        existing = await self.get_node(node_id)

        updates = {
            k: v
            for k, v in changes.items()
            if v is not None or k in _NULLABLE_NODE_FIELDS
        }
        if "text" in updates and _blank(updates["text"]):
            raise ValidationError.single("text", "Text cannot be empty")

        node = await self.graph_repo.update_node(node_id, **updates)
        if node is None:
            raise NodeNotFoundError("Node not found")

        self.snapshots.invalidate(existing.category)
        return node

    async def delete_node(self, node_id: str) -> None:
        """Soft-delete a node. Its connections stay untouched."""
        existing = await self.get_node(node_id)
        await self.graph_repo.soft_delete_node(node_id)
        self.snapshots.invalidate(existing.category)
        log.info("node_deleted", node_id=node_id, category=existing.category)

    # ==================== CONNECTIONS ====================

    async def list_connections(
        self, from_node_id: Optional[str] = None, to_node_id: Optional[str] = None
    ) -> List[Connection]:
        return await self.graph_repo.list_connections(
            from_node_id=from_node_id, to_node_id=to_node_id
        )

    async def get_connection(self, connection_id: str) -> Connection:
        connection = await self.graph_repo.get_connection(connection_id, active_only=True)
        if connection is None:
            raise ConnectionNotFoundError("Connection not found")
        return connection

    async def create_connection(
        self,
        from_node_id: str,
        to_node_id: str,
        label: str,
        order_index: int = 0,
    ) -> Connection:
        """
        Create an active connection between two existing nodes.

        Raises:
            ValidationError: Missing source/target node and/or empty label
        """
        errors: List[Dict[str, str]] = []
        source = await self.graph_repo.get_node(from_node_id)
        if source is None:
            errors.append({"field": "from_node_id", "message": "Source node not found"})
        if await self.graph_repo.get_node(to_node_id) is None:
            errors.append({"field": "to_node_id", "message": "Target node not found"})
        if _blank(label):
            errors.append({"field": "label", "message": "Label is required"})
        if errors:
            raise ValidationError(errors)

        connection = await self.graph_repo.create_connection(
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            label=label,
            order_index=order_index,
        )
        self.snapshots.invalidate(source.category)
        return connection

    async def update_connection(self, connection_id: str, **changes: Any) -> Connection:
        """
        Apply a partial update; ``None`` values are left untouched.

        Raises:
            ConnectionNotFoundError: Unknown or inactive connection
            ValidationError: Blank label and/or missing new target
        """
        existing = await self.get_connection(connection_id)
        updates = {k: v for k, v in changes.items() if v is not None}

        errors: List[Dict[str, str]] = []
        if "label" in updates and _blank(updates["label"]):
            errors.append({"field": "label", "message": "Label cannot be empty"})
        if "to_node_id" in updates:
            if await self.graph_repo.get_node(updates["to_node_id"]) is None:
                errors.append({"field": "to_node_id", "message": "Target node not found"})
        if errors:
            raise ValidationError(errors)

        connection = await self.graph_repo.update_connection(connection_id, **updates)
        if connection is None:
            raise ConnectionNotFoundError("Connection not found")

        await self._invalidate_source(existing)
        return connection

    async def delete_connection(self, connection_id: str) -> None:
        existing = await self.get_connection(connection_id)
        await self.graph_repo.soft_delete_connection(connection_id)
        await self._invalidate_source(existing)
        log.info("connection_deleted", connection_id=connection_id)

    async def _invalidate_source(self, connection: Connection) -> None:
        source = await self.graph_repo.get_node(connection.from_node_id)
        if source is not None:
            self.snapshots.invalidate(source.category)
