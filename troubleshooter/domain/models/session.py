"""Session domain models for the troubleshooting walk.

A session is an append-only log of answered steps. Its position in the graph
is never stored; it is re-derived from the log:

    - no steps: the start node of the session's category (or the global start)
    - otherwise: the target of the last step's connection

Session Lifecycle:
    1. Created by start_session with an empty step log
    2. Each accepted answer appends one step (and bumps ``version``)
    3. Reaching a Conclusion sets completed_at and final_conclusion together
    4. ``abandoned`` is an annotation written by the external sweep only
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from troubleshooter.domain.models.graph import NavigationOption, Node, utc_now


class SessionStep(BaseModel):
    """One answered question in the session log."""

    node_id: str
    node_text: str
    connection_id: str
    connection_label: str
    timestamp: datetime = Field(default_factory=utc_now)


class ClientMetadata(BaseModel):
    """Opaque client details captured when a session starts."""

    tech_identifier: Optional[str] = None
    client_site: Optional[str] = None
    ip_hash: Optional[str] = None
    user_agent: Optional[str] = None


class Session(BaseModel):
    """One user's walk through the decision graph."""

    session_id: str
    category: Optional[str] = None
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    steps: List[SessionStep] = Field(default_factory=list)
    final_conclusion: Optional[str] = None
    abandoned: bool = False
    version: int = 0
    client: ClientMetadata = Field(default_factory=ClientMetadata)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def last_connection_id(self) -> Optional[str]:
        if not self.steps:
            return None
        return self.steps[-1].connection_id


class StartedSession(BaseModel):
    """Result of starting a session: the entry node and its options."""

    session_id: str
    node: Node
    options: List[NavigationOption] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Current position of a session, as returned after every answer."""

    session_id: str
    node: Node
    options: List[NavigationOption] = Field(default_factory=list)
    is_conclusion: bool = False
    conclusion_text: Optional[str] = None


class SessionHistory(BaseModel):
    """Audit view of a session's answered steps."""

    session_id: str
    category: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None
    completed: bool
    abandoned: bool = False
    steps: List[SessionStep] = Field(default_factory=list)
    final_conclusion: Optional[str] = None
