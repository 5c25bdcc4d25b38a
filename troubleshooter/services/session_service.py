"""
Troubleshooting session engine.

Walks a user through the decision graph. The engine keeps no state of its
own: a session's position is re-derived from its persisted step log on every
call, so any server process can serve any request.

States:
    AwaitingAnswer(current_node) -> Completed(conclusion_text)

The transition to Completed happens exactly once, when an accepted answer
leads to a Conclusion node.
"""

from typing import List, Optional
from uuid import uuid4

import structlog

from troubleshooter.core.config import (
    GraphConfig,
    SessionsConfig,
    troubleshoot_config,
)
from troubleshooter.core.exceptions import (
    CategoryNotFoundError,
    ConnectionNotFoundError,
    InvalidAnswerError,
    MissingSeedError,
    NodeNotFoundError,
    SessionAbandonedError,
    SessionCompletedError,
    SessionConflictError,
    SessionNotFoundError,
)
from troubleshooter.domain.models.graph import NavigationOption, Node
from troubleshooter.domain.models.session import (
    ClientMetadata,
    Session,
    SessionHistory,
    SessionSnapshot,
    SessionStep,
    StartedSession,
)
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.persistence.repositories.session_repo import SessionRepository

log = structlog.get_logger(__name__)


class SessionService:
    """Starts sessions, accepts answers and replays session state."""

    def __init__(
        self,
        session_repo: SessionRepository,
        graph_repo: GraphRepository,
        graph_config: Optional[GraphConfig] = None,
        sessions_config: Optional[SessionsConfig] = None,
    ):
        """
        Args:
            session_repo: Session repository
            graph_repo: Graph repository
            graph_config: Semantic id conventions (defaults to troubleshoot_config.graph)
            sessions_config: Session policy (defaults to troubleshoot_config.sessions)
        """
        self.session_repo = session_repo
        self.graph_repo = graph_repo
        self.graph_config = graph_config or troubleshoot_config.graph
        self.sessions_config = sessions_config or troubleshoot_config.sessions

    # ==================== OPERATIONS ====================

    async def start_session(
        self,
        category: Optional[str] = None,
        client: Optional[ClientMetadata] = None,
    ) -> StartedSession:
        """
        Start a session at a category's entry node, or at the global menu.

        Raises:
            CategoryNotFoundError: Category given but it has no active start node
            MissingSeedError: No category given and the global start node is missing
        """
        node = await self._resolve_start_node(category)
        options = await self._navigation_options(node)

        session = Session(
            session_id=str(uuid4()),
            category=category,
            client=client or ClientMetadata(),
        )
        await self.session_repo.create(session)

        log.info(
            "session_started",
            session_id=session.session_id,
            category=category,
            start_node_id=node.id,
            option_count=len(options),
        )

        return StartedSession(session_id=session.session_id, node=node, options=options)

    async def submit_answer(self, session_id: str, connection_id: str) -> SessionSnapshot:
        """
        Record the user's choice and move to the connection's target node.

        Raises:
            SessionNotFoundError: Unknown session
            SessionCompletedError: Session already reached a conclusion
            SessionAbandonedError: Session flagged abandoned and policy rejects it
            ConnectionNotFoundError: Unknown or inactive connection
            InvalidAnswerError: Connection does not leave the current node
            SessionConflictError: Another answer was recorded concurrently
        """
        session = await self._load(session_id)

        if session.is_completed:
            raise SessionCompletedError("Session is already completed")
        if session.abandoned and self.sessions_config.reject_abandoned_answers:
            raise SessionAbandonedError("Session was abandoned")

        connection = await self.graph_repo.get_connection(connection_id, active_only=True)
        if connection is None:
            raise ConnectionNotFoundError("Connection not found")

        current = await self._current_node(session)
        if connection.from_node_id != current.id:
            log.warning(
                "answer_rejected_wrong_node",
                session_id=session_id,
                connection_id=connection_id,
                current_node_id=current.id,
                from_node_id=connection.from_node_id,
            )
            raise InvalidAnswerError(
                "Connection does not belong to the session's current question"
            )

        next_node = await self.graph_repo.get_target_node(connection)
        if next_node is None:
            raise NodeNotFoundError(f"Target node {connection.to_node_id} not found")

        steps = session.steps + [
            SessionStep(
                node_id=current.id,
                node_text=current.text,
                connection_id=connection.id,
                connection_label=connection.label,
            )
        ]

        if next_node.is_conclusion:
            await self._persist(session, steps, final_conclusion=next_node.text)
            log.info(
                "session_completed",
                session_id=session_id,
                conclusion_node_id=next_node.id,
                step_count=len(steps),
            )
            return SessionSnapshot(
                session_id=session_id,
                node=next_node,
                options=[],
                is_conclusion=True,
                conclusion_text=next_node.text,
            )

        options = await self._navigation_options(next_node)
        await self._persist(session, steps)

        log.info(
            "answer_submitted",
            session_id=session_id,
            connection_id=connection.id,
            next_node_id=next_node.id,
            step_count=len(steps),
        )

        return SessionSnapshot(session_id=session_id, node=next_node, options=options)

    async def get_session(self, session_id: str) -> SessionSnapshot:
        """
        Replay a session's step log and describe where it stands.

        Side-effect free; the same persisted state always yields the same
        snapshot.
        """
        session = await self._load(session_id)
        current = await self._current_node(session)

        # Completion is frozen at write time; later graph edits cannot reopen it
        if session.is_completed:
            return SessionSnapshot(
                session_id=session_id,
                node=current,
                options=[],
                is_conclusion=True,
                conclusion_text=session.final_conclusion,
            )

        if current.is_conclusion:
            return SessionSnapshot(
                session_id=session_id,
                node=current,
                options=[],
                is_conclusion=True,
                conclusion_text=current.text,
            )

        options = await self._navigation_options(current)
        return SessionSnapshot(session_id=session_id, node=current, options=options)

    async def get_session_history(self, session_id: str) -> SessionHistory:
        """Return the answered steps of a session in order."""
        session = await self._load(session_id)
        return SessionHistory(
            session_id=session.session_id,
            category=session.category,
            started_at=session.started_at,
            completed_at=session.completed_at,
            completed=session.is_completed,
            abandoned=session.abandoned,
            steps=session.steps,
            final_conclusion=session.final_conclusion,
        )

    # ==================== REPLAY ====================

    async def _current_node(self, session: Session) -> Node:
        """Derive the current node: target of the last step, else the start node."""
        last_connection_id = session.last_connection_id
        if last_connection_id is None:
            return await self._resolve_start_node(session.category)

        connection = await self.graph_repo.get_connection(last_connection_id)
        if connection is None:
            raise ConnectionNotFoundError(
                f"Connection {last_connection_id} recorded in session no longer exists"
            )

        node = await self.graph_repo.get_target_node(connection)
        if node is None:
            raise NodeNotFoundError(f"Node {connection.to_node_id} not found")
        return node

    async def _resolve_start_node(self, category: Optional[str]) -> Node:
        node = await self.graph_repo.get_start_node(category, self.graph_config)
        if node is not None:
            return node

        if category is not None:
            raise CategoryNotFoundError(f"Issue category '{category}' not found")

        log.error(
            "global_start_node_missing",
            semantic_id=self.graph_config.global_start_semantic_id,
        )
        raise MissingSeedError("Global start node not found; database seed is missing")

    async def _navigation_options(self, node: Node) -> List[NavigationOption]:
        edges = await self.graph_repo.get_outgoing_edges_with_targets(node.id)
        return [
            NavigationOption(
                connection_id=edge.id,
                label=edge.label,
                target_category=edge.target_node.category,
                display_category=edge.target_node.display_category,
            )
            for edge in edges
        ]

    # ==================== PERSISTENCE ====================

    async def _load(self, session_id: str) -> Session:
        session = await self.session_repo.get(session_id)
        if session is None:
            raise SessionNotFoundError("Session not found")
        return session

    async def _persist(
        self,
        session: Session,
        steps: List[SessionStep],
        final_conclusion: Optional[str] = None,
    ) -> None:
        written = await self.session_repo.append_step(
            session.session_id,
            steps,
            expected_version=session.version,
            final_conclusion=final_conclusion,
        )
        if written:
            return

        # Lost the race: report completion if that is what happened
        latest = await self._load(session.session_id)
        log.warning(
            "session_write_conflict",
            session_id=session.session_id,
            expected_version=session.version,
            actual_version=latest.version,
        )
        if latest.is_completed:
            raise SessionCompletedError("Session is already completed")
        raise SessionConflictError(
            "Session was updated by another request; reload and answer again"
        )
