"""Session repository for database operations."""

from datetime import datetime
from typing import List, Optional

import aiosqlite
import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from troubleshooter.core.exceptions import SessionDataError
from troubleshooter.domain.models.graph import utc_now
from troubleshooter.domain.models.session import ClientMetadata, Session, SessionStep

log = structlog.get_logger(__name__)

_STEPS = TypeAdapter(List[SessionStep])


class SessionRepository:
    """Repository for troubleshooting session persistence.

    The step log is stored as a JSON array in ``sessions.steps``. Every
    write that extends it is a single UPDATE guarded by the session's
    ``version`` so that concurrent appends cannot silently overwrite each
    other.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, session: Session) -> Session:
        """Insert a new session and return it as stored."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute(
                """INSERT INTO sessions (
                    session_id, category, started_at, completed_at, steps,
                    final_conclusion, abandoned, version,
                    tech_identifier, client_site, ip_hash, user_agent
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    session.session_id,
                    session.category,
                    session.started_at.isoformat(),
                    session.completed_at.isoformat() if session.completed_at else None,
                    _STEPS.dump_json(session.steps).decode(),
                    session.final_conclusion,
                    1 if session.abandoned else 0,
                    session.version,
                    session.client.tech_identifier,
                    session.client.client_site,
                    session.client.ip_hash,
                    session.client.user_agent,
                ),
            )
            await db.commit()

            cursor = await db.execute(
                "SELECT * FROM sessions WHERE session_id = ?", (session.session_id,)
            )
            row = await cursor.fetchone()
            if not row:
                raise ValueError(f"Session {session.session_id} not found after creation")
            return self._row_to_session(row)

    async def get(self, session_id: str) -> Optional[Session]:
        """Get a session by its public session id.

        Raises:
            SessionDataError: If the stored step log is not a valid list of steps
        """
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sessions WHERE session_id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return self._row_to_session(row)

    async def append_step(
        self,
        session_id: str,
        steps: List[SessionStep],
        expected_version: int,
        final_conclusion: Optional[str] = None,
    ) -> bool:
        """Persist an extended step log, completing the session if concluded.

        Steps, completion fields and the version bump are written by one
        UPDATE, so either all of them land or none do.

        Args:
            session_id: Public session id
            steps: Full step log including the new step
            expected_version: Version read before the step was appended
            final_conclusion: Conclusion text when the new step reached a
                Conclusion node

        Returns:
            False if the session changed (or completed) since it was read
        """
        steps_json = _STEPS.dump_json(steps).decode()

        async with aiosqlite.connect(self.db_path) as db:
            if final_conclusion is not None:
                cursor = await db.execute(
                    """UPDATE sessions
                       SET steps = ?, final_conclusion = ?, completed_at = ?,
                           abandoned = 0, version = version + 1
                       WHERE session_id = ? AND version = ? AND completed_at IS NULL""",
                    (
                        steps_json,
                        final_conclusion,
                        utc_now().isoformat(),
                        session_id,
                        expected_version,
                    ),
                )
            else:
                cursor = await db.execute(
                    """UPDATE sessions
                       SET steps = ?, abandoned = 0, version = version + 1
                       WHERE session_id = ? AND version = ? AND completed_at IS NULL""",
                    (steps_json, session_id, expected_version),
                )
            await db.commit()
            return cursor.rowcount == 1

    async def mark_abandoned(self, started_before: datetime) -> int:
        """Flag incomplete sessions started before a cutoff as abandoned.

        Returns:
            Number of sessions newly flagged
        """
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """UPDATE sessions SET abandoned = 1
                   WHERE completed_at IS NULL AND abandoned = 0 AND started_at < ?""",
                (started_before.isoformat(),),
            )
            await db.commit()
            return cursor.rowcount

    async def delete_by_category(self, category: str) -> int:
        """Delete every session started in a category. Returns rows deleted."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM sessions WHERE category = ?", (category,)
            )
            await db.commit()
            return cursor.rowcount

    def _row_to_session(self, row: aiosqlite.Row) -> Session:
        """Convert a database row to a Session model."""
        try:
            steps = _STEPS.validate_json(row["steps"] or "[]")
        except PydanticValidationError as e:
            log.error(
                "session_steps_corrupt",
                session_id=row["session_id"],
                errors=e.error_count(),
            )
            raise SessionDataError(
                f"Session {row['session_id']} has invalid step data"
            ) from e

        return Session(
            session_id=row["session_id"],
            category=row["category"],
            started_at=datetime.fromisoformat(row["started_at"]),
            completed_at=datetime.fromisoformat(row["completed_at"])
            if row["completed_at"]
            else None,
            steps=steps,
            final_conclusion=row["final_conclusion"],
            abandoned=bool(row["abandoned"]),
            version=row["version"],
            client=ClientMetadata(
                tech_identifier=row["tech_identifier"],
                client_site=row["client_site"],
                ip_hash=row["ip_hash"],
                user_agent=row["user_agent"],
            ),
        )
