"""
Abandoned session sweep.

Runs outside the request path (see scripts/mark_abandoned_sessions.py).
The session engine never flags sessions itself.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

from troubleshooter.core.config import SessionsConfig, troubleshoot_config
from troubleshooter.domain.models.graph import utc_now
from troubleshooter.persistence.repositories.session_repo import SessionRepository

log = structlog.get_logger(__name__)


class SessionReaper:
    """Flags stale, unfinished sessions as abandoned."""

    def __init__(
        self,
        session_repo: SessionRepository,
        sessions_config: Optional[SessionsConfig] = None,
    ):
        self.session_repo = session_repo
        self.sessions_config = sessions_config or troubleshoot_config.sessions

    async def mark_abandoned(
        self,
        older_than: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Flag incomplete sessions started more than ``older_than`` ago.

        Args:
            older_than: Age threshold (defaults to sessions.abandon_after_minutes)
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of sessions newly flagged
        """
        if older_than is None:
            older_than = timedelta(minutes=self.sessions_config.abandon_after_minutes)
        cutoff = (now or utc_now()) - older_than

        count = await self.session_repo.mark_abandoned(cutoff)
        log.info("sessions_marked_abandoned", count=count, cutoff=cutoff.isoformat())
        return count
