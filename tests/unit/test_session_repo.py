"""Tests for session repository."""

from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from troubleshooter.core.exceptions import SessionDataError
from troubleshooter.domain.models.session import ClientMetadata, Session, SessionStep


def _step(n: int) -> SessionStep:
    return SessionStep(
        node_id=f"node-{n}",
        node_text=f"Question {n}",
        connection_id=f"conn-{n}",
        connection_label=f"Answer {n}",
    )


@pytest.fixture
async def stored_session(session_repo):
    return await session_repo.create(
        Session(
            session_id="s-1",
            category="brush",
            client=ClientMetadata(tech_identifier="tech-7", client_site="Plant A"),
        )
    )


class TestCreateAndGet:
    async def test_create_round_trips_fields(self, stored_session):
        assert stored_session.session_id == "s-1"
        assert stored_session.category == "brush"
        assert stored_session.steps == []
        assert stored_session.version == 0
        assert stored_session.completed_at is None
        assert stored_session.client.tech_identifier == "tech-7"

    async def test_get_missing_returns_none(self, session_repo):
        assert await session_repo.get("nope") is None


class TestAppendStep:
    async def test_append_bumps_version(self, session_repo, stored_session):
        written = await session_repo.append_step("s-1", [_step(1)], expected_version=0)

        assert written is True
        session = await session_repo.get("s-1")
        assert session.version == 1
        assert [s.connection_id for s in session.steps] == ["conn-1"]

    async def test_stale_version_rejected(self, session_repo, stored_session):
        await session_repo.append_step("s-1", [_step(1)], expected_version=0)

        written = await session_repo.append_step("s-1", [_step(2)], expected_version=0)

        assert written is False
        session = await session_repo.get("s-1")
        assert [s.connection_id for s in session.steps] == ["conn-1"]

    async def test_conclusion_sets_completion_fields_together(
        self, session_repo, stored_session
    ):
        await session_repo.append_step(
            "s-1", [_step(1)], expected_version=0, final_conclusion="Replace brush"
        )

        session = await session_repo.get("s-1")
        assert session.is_completed
        assert session.final_conclusion == "Replace brush"
        assert len(session.steps) == 1

    async def test_completed_session_rejects_append(self, session_repo, stored_session):
        await session_repo.append_step(
            "s-1", [_step(1)], expected_version=0, final_conclusion="Done"
        )

        written = await session_repo.append_step("s-1", [_step(1), _step(2)], expected_version=1)

        assert written is False

    async def test_append_clears_abandoned(self, session_repo, stored_session, test_db):
        async with aiosqlite.connect(test_db) as db:
            await db.execute("UPDATE sessions SET abandoned = 1 WHERE session_id = 's-1'")
            await db.commit()

        await session_repo.append_step("s-1", [_step(1)], expected_version=0)

        session = await session_repo.get("s-1")
        assert session.abandoned is False


class TestCorruptSteps:
    @pytest.mark.parametrize(
        "raw",
        ['{"not": "a list"}', '[{"node_id": "n"}]', "not json"],
    )
    async def test_invalid_steps_raise_session_data_error(
        self, session_repo, stored_session, test_db, raw
    ):
        async with aiosqlite.connect(test_db) as db:
            await db.execute("UPDATE sessions SET steps = ? WHERE session_id = 's-1'", (raw,))
            await db.commit()

        with pytest.raises(SessionDataError):
            await session_repo.get("s-1")


class TestMaintenance:
    async def test_mark_abandoned_only_flags_old_open_sessions(self, session_repo):
        old = datetime.now(timezone.utc) - timedelta(hours=3)
        await session_repo.create(Session(session_id="old-open", started_at=old))
        await session_repo.create(Session(session_id="old-done", started_at=old))
        await session_repo.append_step(
            "old-done", [_step(1)], expected_version=0, final_conclusion="Done"
        )
        await session_repo.create(Session(session_id="fresh"))

        cutoff = datetime.now(timezone.utc) - timedelta(hours=1)
        count = await session_repo.mark_abandoned(cutoff)

        assert count == 1
        assert (await session_repo.get("old-open")).abandoned is True
        assert (await session_repo.get("old-done")).abandoned is False
        assert (await session_repo.get("fresh")).abandoned is False

    async def test_delete_by_category(self, session_repo, stored_session):
        await session_repo.create(Session(session_id="s-2", category="pump"))

        assert await session_repo.delete_by_category("brush") == 1
        assert await session_repo.get("s-1") is None
        assert await session_repo.get("s-2") is not None
