"""
API request/response schemas.

Pydantic models for API validation and serialization. Responses reuse the
domain models where the shapes coincide (Node, Connection, CategoryGraph,
StartedSession, SessionSnapshot, SessionHistory).
"""

from pydantic import BaseModel, Field
from typing import Optional

from troubleshooter.domain.models.graph import NodeType


# ============ TROUBLESHOOTING SCHEMAS ============


class StartSessionRequest(BaseModel):
    """Request to start a troubleshooting session."""

    tech_identifier: Optional[str] = None
    client_site: Optional[str] = None
    category: Optional[str] = Field(
        default=None,
        description="Issue category to start in; omit to start at the issue menu",
    )


class SubmitAnswerRequest(BaseModel):
    """Answer to the session's current question."""

    connection_id: str


# ============ NODE SCHEMAS ============


class CreateNodeRequest(BaseModel):
    """Request to create a node."""

    category: str
    node_type: NodeType
    text: str
    semantic_id: Optional[str] = None
    display_category: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None


class UpdateNodeRequest(BaseModel):
    """Partial node update; omitted fields are left unchanged."""

    node_type: Optional[NodeType] = None
    text: Optional[str] = None
    semantic_id: Optional[str] = None
    display_category: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None


# ============ CONNECTION SCHEMAS ============


class CreateConnectionRequest(BaseModel):
    """Request to create a connection."""

    from_node_id: str
    to_node_id: str
    label: str
    order_index: int = 0


class UpdateConnectionRequest(BaseModel):
    """Partial connection update; omitted fields are left unchanged."""

    to_node_id: Optional[str] = None
    label: Optional[str] = None
    order_index: Optional[int] = None


# ============ ISSUE (CATEGORY) SCHEMAS ============


class CreateIssueRequest(BaseModel):
    """Request to create a category with its root question."""

    name: str
    category: str
    display_category: Optional[str] = None
    root_question_text: str


class UpdateIssueRequest(BaseModel):
    """Rename an issue and/or change its display group."""

    name: Optional[str] = None
    display_category: Optional[str] = None


class DeleteIssueResponse(BaseModel):
    """Outcome of deleting a category."""

    category: str
    deleted_count: int
    sessions_deleted: int = 0


# ============ CACHE SCHEMAS ============


class CacheStatsResponse(BaseModel):
    """Snapshot cache metrics."""

    total: int
    active: int
    expired: int
    max_size: int
    ttl: int


class CacheCleanupResponse(BaseModel):
    """Number of entries removed by a cache sweep."""

    removed: int

