"""Domain models for the troubleshooting decision graph.

A category's interview is a directed graph of nodes joined by labelled,
ordered connections:

    - Node: a Question (prompts the user, owns outgoing connections) or a
      Conclusion (terminal outcome shown to the user)
    - Connection: an answer option leading from one node to another

Well-known entry points are located by semantic id: ``<category>_start`` for
a category's root question and ``start`` for the global issue menu.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NodeType(str, Enum):
    """Kind of graph vertex."""

    QUESTION = "question"
    CONCLUSION = "conclusion"


class Node(BaseModel):
    """A decision point or a terminal answer."""

    id: str
    category: str
    node_type: NodeType
    text: str
    semantic_id: Optional[str] = None
    display_category: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = {"from_attributes": True}

    @property
    def is_conclusion(self) -> bool:
        return self.node_type == NodeType.CONCLUSION


class Connection(BaseModel):
    """A labelled, ordered, directed transition between two nodes."""

    id: str
    from_node_id: str
    to_node_id: str
    label: str
    order_index: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = {"from_attributes": True}


class NavigationOption(BaseModel):
    """An answer the user can pick from the current node."""

    connection_id: str
    label: str
    target_category: str
    display_category: Optional[str] = None


class ConnectionWithTarget(BaseModel):
    """Outgoing connection together with the node it leads to."""

    id: str
    label: str
    order_index: int
    target_node: Node


class NodeWithConnections(BaseModel):
    """Node with its active outgoing connections, for the editor side panel."""

    node: Node
    connections: List[ConnectionWithTarget] = Field(default_factory=list)


class CategoryGraph(BaseModel):
    """Snapshot of every active node and edge of a category."""

    category: str
    nodes: List[Node] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)


class IncompleteQuestion(BaseModel):
    """Question node with no active outgoing connection (a dead end)."""

    node_id: str
    text: str
    semantic_id: Optional[str] = None

    def describe(self) -> str:
        return f"{self.text} ({self.semantic_id or 'no ID'})"


class CategorySummary(BaseModel):
    """Top-level view of one category (an "issue" in the editor)."""

    category: str
    name: str
    display_category: Optional[str] = None
    root_node_id: str
    is_active: bool
    node_count: int
    created_at: datetime
    updated_at: datetime
