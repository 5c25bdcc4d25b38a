"""Domain models."""

from troubleshooter.domain.models.graph import (
    CategoryGraph,
    CategorySummary,
    Connection,
    ConnectionWithTarget,
    IncompleteQuestion,
    NavigationOption,
    Node,
    NodeType,
    NodeWithConnections,
)
from troubleshooter.domain.models.session import (
    ClientMetadata,
    Session,
    SessionHistory,
    SessionSnapshot,
    SessionStep,
    StartedSession,
)

__all__ = [
    "CategoryGraph",
    "CategorySummary",
    "ClientMetadata",
    "Connection",
    "ConnectionWithTarget",
    "IncompleteQuestion",
    "NavigationOption",
    "Node",
    "NodeType",
    "NodeWithConnections",
    "Session",
    "SessionHistory",
    "SessionSnapshot",
    "SessionStep",
    "StartedSession",
]
