"""
Repository for decision graph persistence.

Handles CRUD operations on the nodes and connections tables.
Uses aiosqlite for async SQLite access; every statement binds its values.

No business logic - that belongs in the services.
"""

from datetime import datetime
from typing import Any, List, Optional
from uuid import uuid4

import aiosqlite
import structlog

from troubleshooter.core.config import GraphConfig, troubleshoot_config
from troubleshooter.domain.models.graph import (
    CategorySummary,
    Connection,
    ConnectionWithTarget,
    IncompleteQuestion,
    Node,
    NodeType,
    utc_now,
)

log = structlog.get_logger(__name__)

NODE_COLUMNS = (
    "id, category, node_type, text, semantic_id, display_category, "
    "position_x, position_y, is_active, created_at, updated_at"
)
CONNECTION_COLUMNS = (
    "id, from_node_id, to_node_id, label, order_index, is_active, created_at, updated_at"
)

# Columns a partial update may touch, per table
_NODE_UPDATABLE = (
    "text",
    "semantic_id",
    "node_type",
    "display_category",
    "position_x",
    "position_y",
    "is_active",
)
_CONNECTION_UPDATABLE = ("to_node_id", "label", "order_index", "is_active")


class GraphRepository:
    """
    Repository for decision graph nodes and connections.

    Provides CRUD operations on SQLite tables:
    - nodes: Question and Conclusion vertices
    - connections: labelled, ordered edges between nodes

    Mutations commit immediately unless called with ``commit=False``, in
    which case the caller groups them and finishes with ``commit()`` or
    ``rollback()``.
    """

    def __init__(self, db: aiosqlite.Connection):
        """
        Initialize graph repository.

        Args:
            db: aiosqlite connection (from FastAPI dependency)
        """
        self.db = db
        self.db.row_factory = aiosqlite.Row

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    # ==================== NODE READS ====================

    async def get_node(self, node_id: str) -> Optional[Node]:
        """
        Get a node by ID regardless of its active flag.

        Returns:
            Node or None if not found
        """
        cursor = await self.db.execute(
            f"SELECT {NODE_COLUMNS} FROM nodes WHERE id = ?", (node_id,)
        )
        row = await cursor.fetchone()
        return self._row_to_node(row) if row else None

    async def get_node_by_semantic_id(
        self, semantic_id: str, active_only: bool = True
    ) -> Optional[Node]:
        """Find a node by its stable semantic id."""
        query = f"SELECT {NODE_COLUMNS} FROM nodes WHERE semantic_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at ASC, rowid ASC LIMIT 1"

        cursor = await self.db.execute(query, (semantic_id,))
        row = await cursor.fetchone()
        return self._row_to_node(row) if row else None

    async def get_start_node(
        self, category: Optional[str] = None, graph_config: Optional[GraphConfig] = None
    ) -> Optional[Node]:
        """
        Resolve an entry node.

        Args:
            category: Category whose ``<category>_start`` node to resolve; None
                for the global ``start`` node
            graph_config: Semantic id conventions (defaults to troubleshoot_config.graph)

        Returns:
            The active node, or None when missing or inactive
        """
        config = graph_config or troubleshoot_config.graph
        return await self.get_node_by_semantic_id(
            config.start_semantic_id(category), active_only=True
        )

    async def list_nodes(
        self, category: Optional[str] = None, node_type: Optional[NodeType] = None
    ) -> List[Node]:
        """List active nodes, optionally filtered by category and/or type."""
        clauses = ["is_active = 1"]
        params: List[Any] = []

        if category is not None:
            clauses.append("category = ?")
            params.append(category)
        if node_type is not None:
            clauses.append("node_type = ?")
            params.append(NodeType(node_type).value)

        cursor = await self.db.execute(
            f"SELECT {NODE_COLUMNS} FROM nodes WHERE {' AND '.join(clauses)} "
            "ORDER BY created_at ASC, rowid ASC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_node(row) for row in rows]

    async def list_category_nodes(
        self, category: str, active_only: bool = True
    ) -> List[Node]:
        """Get the nodes of a category in creation order."""
        query = f"SELECT {NODE_COLUMNS} FROM nodes WHERE category = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at ASC, rowid ASC"

        cursor = await self.db.execute(query, (category,))
        rows = await cursor.fetchall()
        return [self._row_to_node(row) for row in rows]

    async def count_category_nodes(self, category: str) -> int:
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM nodes WHERE category = ?", (category,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def category_exists(self, category: str) -> bool:
        cursor = await self.db.execute(
            "SELECT EXISTS(SELECT 1 FROM nodes WHERE category = ?)", (category,)
        )
        row = await cursor.fetchone()
        return bool(row[0]) if row else False

    async def get_category_root(self, category: str, semantic_id: str) -> Optional[Node]:
        """
        Get the root node of a category regardless of active flag.

        Prefers the node carrying the category's start semantic id and falls
        back to the earliest created node of the category.
        """
        cursor = await self.db.execute(
            f"""
            SELECT {NODE_COLUMNS} FROM nodes
            WHERE category = ?
            ORDER BY CASE WHEN semantic_id = ? THEN 0 ELSE 1 END,
                     created_at ASC, rowid ASC
            LIMIT 1
            """,
            (category, semantic_id),
        )
        row = await cursor.fetchone()
        return self._row_to_node(row) if row else None

    async def find_incomplete_questions(
        self, category: str, include_inactive: bool = False
    ) -> List[IncompleteQuestion]:
        """
        Find Question nodes of a category with no active outgoing connection.

        Args:
            category: Category to inspect
            include_inactive: Also consider inactive question nodes (used when
                the whole category is about to be switched on)

        Returns:
            Dead-end questions in creation order
        """
        query = """
            SELECT n.id, n.text, n.semantic_id FROM nodes n
            WHERE n.category = ?
              AND n.node_type = 'question'
              AND NOT EXISTS (
                  SELECT 1 FROM connections c
                  WHERE c.from_node_id = n.id AND c.is_active = 1
              )
        """
        if not include_inactive:
            query += " AND n.is_active = 1"
        query += " ORDER BY n.created_at ASC, n.rowid ASC"

        cursor = await self.db.execute(query, (category,))
        rows = await cursor.fetchall()
        return [
            IncompleteQuestion(
                node_id=row["id"], text=row["text"], semantic_id=row["semantic_id"]
            )
            for row in rows
        ]

    async def list_categories(
        self, global_start_id: str, start_suffix: str
    ) -> List[CategorySummary]:
        """
        Summarize every category that owns a ``<category>_start`` root node.

        The category's display name is the label of the global start edge
        leading into its root, falling back to the category itself.
        """
        cursor = await self.db.execute(
            f"""
            SELECT {', '.join('r.' + c.strip() for c in NODE_COLUMNS.split(','))},
                (SELECT COUNT(*) FROM nodes c WHERE c.category = r.category) AS node_count,
                (SELECT e.label FROM connections e
                 WHERE e.to_node_id = r.id AND e.from_node_id = ?
                 ORDER BY e.created_at ASC LIMIT 1) AS start_label
            FROM nodes r
            WHERE r.semantic_id = r.category || ?
            ORDER BY r.category ASC
            """,
            (global_start_id, start_suffix),
        )
        rows = await cursor.fetchall()
        return [
            CategorySummary(
                category=row["category"],
                name=row["start_label"] or row["category"],
                display_category=row["display_category"],
                root_node_id=row["id"],
                is_active=bool(row["is_active"]),
                node_count=row["node_count"],
                created_at=datetime.fromisoformat(row["created_at"]),
                updated_at=datetime.fromisoformat(row["updated_at"]),
            )
            for row in rows
        ]

    # ==================== NODE MUTATIONS ====================

    async def create_node(
        self,
        category: str,
        node_type: NodeType,
        text: str,
        semantic_id: Optional[str] = None,
        display_category: Optional[str] = None,
        position_x: Optional[float] = None,
        position_y: Optional[float] = None,
        is_active: bool = True,
        commit: bool = True,
    ) -> Node:
        """
        Create a new node.

        Returns:
            Created Node
        """
        node_id = str(uuid4())
        now = utc_now().isoformat()

        await self.db.execute(
            f"""
            INSERT INTO nodes ({NODE_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                node_id,
                category,
                NodeType(node_type).value,
                text,
                semantic_id,
                display_category,
                position_x,
                position_y,
                1 if is_active else 0,
                now,
                now,
            ),
        )
        if commit:
            await self.db.commit()

        log.info(
            "node_created",
            node_id=node_id,
            category=category,
            node_type=NodeType(node_type).value,
            semantic_id=semantic_id,
        )

        node = await self.get_node(node_id)
        if node is None:
            raise RuntimeError(
                f"Node creation failed: node {node_id} not found after INSERT"
            )
        return node

    async def update_node(self, node_id: str, commit: bool = True, **updates) -> Optional[Node]:
        """
        Update a node's fields.

        Args:
            node_id: Node ID
            **updates: Fields to update; unknown fields are ignored

        Returns:
            Updated Node or None if not found
        """
        set_clauses = ["updated_at = ?"]
        values: List[Any] = [utc_now().isoformat()]

        for field, value in updates.items():
            if field not in _NODE_UPDATABLE:
                continue
            if field == "node_type":
                value = NodeType(value).value
            elif field == "is_active":
                value = 1 if value else 0
            set_clauses.append(f"{field} = ?")
            values.append(value)

        values.append(node_id)
        cursor = await self.db.execute(
            f"UPDATE nodes SET {', '.join(set_clauses)} WHERE id = ?", values
        )
        if commit:
            await self.db.commit()

        if cursor.rowcount == 0:
            return None

        log.info("node_updated", node_id=node_id, updates=sorted(updates.keys()))
        return await self.get_node(node_id)

    async def soft_delete_node(self, node_id: str) -> Optional[Node]:
        """Mark a node inactive. Returns the updated node or None if not found."""
        return await self.update_node(node_id, is_active=False)

    async def set_category_active(
        self, category: str, is_active: bool, commit: bool = True
    ) -> int:
        """Set the active flag on every node of a category. Returns rows touched."""
        cursor = await self.db.execute(
            "UPDATE nodes SET is_active = ?, updated_at = ? WHERE category = ?",
            (1 if is_active else 0, utc_now().isoformat(), category),
        )
        if commit:
            await self.db.commit()
        return cursor.rowcount

    async def set_category_display(
        self, category: str, display_category: Optional[str], commit: bool = True
    ) -> int:
        """Set display_category on every node of a category."""
        cursor = await self.db.execute(
            "UPDATE nodes SET display_category = ?, updated_at = ? WHERE category = ?",
            (display_category, utc_now().isoformat(), category),
        )
        if commit:
            await self.db.commit()
        return cursor.rowcount

    async def delete_category(self, category: str, commit: bool = True) -> int:
        """
        Hard-delete every node of a category and every connection touching them.

        Returns:
            Number of nodes deleted
        """
        await self.db.execute(
            """
            DELETE FROM connections
            WHERE from_node_id IN (SELECT id FROM nodes WHERE category = ?)
               OR to_node_id IN (SELECT id FROM nodes WHERE category = ?)
            """,
            (category, category),
        )
        cursor = await self.db.execute("DELETE FROM nodes WHERE category = ?", (category,))
        if commit:
            await self.db.commit()

        log.info("category_deleted", category=category, nodes_deleted=cursor.rowcount)
        return cursor.rowcount

    # ==================== CONNECTION READS ====================

    async def get_connection(
        self, connection_id: str, active_only: bool = False
    ) -> Optional[Connection]:
        """
        Get a connection by ID.

        Args:
            connection_id: Connection ID
            active_only: Treat inactive connections as missing

        Returns:
            Connection or None if not found
        """
        query = f"SELECT {CONNECTION_COLUMNS} FROM connections WHERE id = ?"
        if active_only:
            query += " AND is_active = 1"

        cursor = await self.db.execute(query, (connection_id,))
        row = await cursor.fetchone()
        return self._row_to_connection(row) if row else None

    async def get_outgoing_edges(self, node_id: str) -> List[Connection]:
        """
        Get active outgoing connections of a node.

        Sorted by order_index ascending; ties broken by id for determinism.
        """
        cursor = await self.db.execute(
            f"""
            SELECT {CONNECTION_COLUMNS} FROM connections
            WHERE from_node_id = ? AND is_active = 1
            ORDER BY order_index ASC, id ASC
            """,
            (node_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_connection(row) for row in rows]

    async def get_outgoing_edges_with_targets(
        self, node_id: str
    ) -> List[ConnectionWithTarget]:
        """
        Get active outgoing connections of a node joined with their target nodes.

        Same ordering as get_outgoing_edges.
        """
        target_columns = ", ".join(
            f"n.{c.strip()} AS t_{c.strip()}" for c in NODE_COLUMNS.split(",")
        )
        cursor = await self.db.execute(
            f"""
            SELECT c.id, c.label, c.order_index, {target_columns}
            FROM connections c
            JOIN nodes n ON n.id = c.to_node_id
            WHERE c.from_node_id = ? AND c.is_active = 1
            ORDER BY c.order_index ASC, c.id ASC
            """,
            (node_id,),
        )
        rows = await cursor.fetchall()
        return [
            ConnectionWithTarget(
                id=row["id"],
                label=row["label"],
                order_index=row["order_index"],
                target_node=self._row_to_node(row, prefix="t_"),
            )
            for row in rows
        ]

    async def get_target_node(self, connection: Connection) -> Optional[Node]:
        """Get the node a connection leads to."""
        return await self.get_node(connection.to_node_id)

    async def list_connections(
        self, from_node_id: Optional[str] = None, to_node_id: Optional[str] = None
    ) -> List[Connection]:
        """List active connections, optionally filtered by source and/or target."""
        clauses = ["is_active = 1"]
        params: List[Any] = []

        if from_node_id is not None:
            clauses.append("from_node_id = ?")
            params.append(from_node_id)
        if to_node_id is not None:
            clauses.append("to_node_id = ?")
            params.append(to_node_id)

        cursor = await self.db.execute(
            f"SELECT {CONNECTION_COLUMNS} FROM connections "
            f"WHERE {' AND '.join(clauses)} ORDER BY order_index ASC, id ASC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_connection(row) for row in rows]

    async def list_category_connections(self, category: str) -> List[Connection]:
        """Get active connections whose source is an active node of the category."""
        cursor = await self.db.execute(
            f"""
            SELECT {CONNECTION_COLUMNS} FROM connections
            WHERE is_active = 1
              AND from_node_id IN (
                  SELECT id FROM nodes WHERE category = ? AND is_active = 1
              )
            ORDER BY order_index ASC, id ASC
            """,
            (category,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_connection(row) for row in rows]

    async def find_connection_between(
        self, from_node_id: str, to_node_id: str
    ) -> Optional[Connection]:
        """Find the earliest connection from one node to another, active or not."""
        cursor = await self.db.execute(
            f"""
            SELECT {CONNECTION_COLUMNS} FROM connections
            WHERE from_node_id = ? AND to_node_id = ?
            ORDER BY created_at ASC, rowid ASC
            LIMIT 1
            """,
            (from_node_id, to_node_id),
        )
        row = await cursor.fetchone()
        return self._row_to_connection(row) if row else None

    async def count_outgoing(self, node_id: str) -> int:
        """Count all connections leaving a node, active or not."""
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM connections WHERE from_node_id = ?", (node_id,)
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    # ==================== CONNECTION MUTATIONS ====================

    async def create_connection(
        self,
        from_node_id: str,
        to_node_id: str,
        label: str,
        order_index: int = 0,
        is_active: bool = True,
        commit: bool = True,
    ) -> Connection:
        """
        Create a new connection.

        Returns:
            Created Connection
        """
        connection_id = str(uuid4())
        now = utc_now().isoformat()

        await self.db.execute(
            f"""
            INSERT INTO connections ({CONNECTION_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                connection_id,
                from_node_id,
                to_node_id,
                label,
                order_index,
                1 if is_active else 0,
                now,
                now,
            ),
        )
        if commit:
            await self.db.commit()

        log.info(
            "connection_created",
            connection_id=connection_id,
            source=from_node_id,
            target=to_node_id,
            label=label,
        )

        connection = await self.get_connection(connection_id)
        if connection is None:
            raise RuntimeError(
                f"Connection creation failed: connection {connection_id} not found after INSERT"
            )
        return connection

    async def update_connection(
        self, connection_id: str, commit: bool = True, **updates
    ) -> Optional[Connection]:
        """
        Update a connection's fields.

        Returns:
            Updated Connection or None if not found
        """
        set_clauses = ["updated_at = ?"]
        values: List[Any] = [utc_now().isoformat()]

        for field, value in updates.items():
            if field not in _CONNECTION_UPDATABLE:
                continue
            if field == "is_active":
                value = 1 if value else 0
            set_clauses.append(f"{field} = ?")
            values.append(value)

        values.append(connection_id)
        cursor = await self.db.execute(
            f"UPDATE connections SET {', '.join(set_clauses)} WHERE id = ?", values
        )
        if commit:
            await self.db.commit()

        if cursor.rowcount == 0:
            return None

        log.info(
            "connection_updated",
            connection_id=connection_id,
            updates=sorted(updates.keys()),
        )
        return await self.get_connection(connection_id)

    async def soft_delete_connection(self, connection_id: str) -> Optional[Connection]:
        """Mark a connection inactive. Returns the updated connection or None."""
        return await self.update_connection(connection_id, is_active=False)

    # ==================== ROW MAPPING ====================

    def _row_to_node(self, row: aiosqlite.Row, prefix: str = "") -> Node:
        """Convert a database row (optionally with prefixed columns) to a Node."""
        return Node(
            id=row[f"{prefix}id"],
            category=row[f"{prefix}category"],
            node_type=NodeType(row[f"{prefix}node_type"]),
            text=row[f"{prefix}text"],
            semantic_id=row[f"{prefix}semantic_id"],
            display_category=row[f"{prefix}display_category"],
            position_x=row[f"{prefix}position_x"],
            position_y=row[f"{prefix}position_y"],
            is_active=bool(row[f"{prefix}is_active"]),
            created_at=datetime.fromisoformat(row[f"{prefix}created_at"]),
            updated_at=datetime.fromisoformat(row[f"{prefix}updated_at"]),
        )

    def _row_to_connection(self, row: aiosqlite.Row) -> Connection:
        """Convert a database row to a Connection."""
        return Connection(
            id=row["id"],
            from_node_id=row["from_node_id"],
            to_node_id=row["to_node_id"],
            label=row["label"],
            order_index=row["order_index"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

