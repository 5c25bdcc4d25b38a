"""
Shared test fixtures.

Every test gets its own temporary SQLite database, initialized from the
schema (so the global start node is seeded), and ``settings.database_path``
points at it for the duration of the test.
"""

import pytest
import tempfile
from pathlib import Path
from types import SimpleNamespace

import aiosqlite

from troubleshooter.core.config import GraphConfig, SessionsConfig, settings
from troubleshooter.domain.models.graph import NodeType
from troubleshooter.persistence.database import init_database
from troubleshooter.persistence.repositories.graph_repo import GraphRepository
from troubleshooter.persistence.repositories.session_repo import SessionRepository
from troubleshooter.services.graph_snapshot_service import GraphSnapshotService
from troubleshooter.services.session_service import SessionService
from troubleshooter.services.ttl_cache import TTLCache


@pytest.fixture
async def test_db(monkeypatch):
    """Create and initialize test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)
        monkeypatch.setattr(settings, "database_path", db_path)
        yield db_path


@pytest.fixture
async def db_connection(test_db):
    """Create a database connection for testing."""
    async with aiosqlite.connect(str(test_db)) as db:
        await db.execute("PRAGMA foreign_keys = ON")
        db.row_factory = aiosqlite.Row
        yield db


@pytest.fixture
async def session_repo(test_db):
    """Create session repository with test database."""
    return SessionRepository(str(test_db))


@pytest.fixture
async def graph_repo(db_connection):
    """Create graph repository with test database connection."""
    return GraphRepository(db_connection)


@pytest.fixture
def cache():
    return TTLCache(ttl_seconds=600, max_size=50)


@pytest.fixture
def snapshots(graph_repo, cache):
    return GraphSnapshotService(graph_repo, cache)


@pytest.fixture
def session_service(session_repo, graph_repo):
    return SessionService(
        session_repo=session_repo,
        graph_repo=graph_repo,
        graph_config=GraphConfig(),
        sessions_config=SessionsConfig(),
    )


@pytest.fixture
async def brush_graph(graph_repo):
    """
    Category "brush":

        start --"Brush issues"--> A "Is brush worn?"
        A --"Yes"(0)--> B "Replace brush" (conclusion)
        A --"No"(1)--> C "Check motor?" (question, dead end)
    """
    start = await graph_repo.get_node_by_semantic_id("start")
    root = await graph_repo.create_node(
        category="brush",
        node_type=NodeType.QUESTION,
        text="Is brush worn?",
        semantic_id="brush_start",
        display_category="Motors",
    )
    replace = await graph_repo.create_node(
        category="brush",
        node_type=NodeType.CONCLUSION,
        text="Replace brush",
        semantic_id="brush_replace",
    )
    motor = await graph_repo.create_node(
        category="brush",
        node_type=NodeType.QUESTION,
        text="Check motor?",
        semantic_id="brush_motor",
    )
    yes = await graph_repo.create_connection(root.id, replace.id, "Yes", order_index=0)
    no = await graph_repo.create_connection(root.id, motor.id, "No", order_index=1)
    menu = await graph_repo.create_connection(start.id, root.id, "Brush issues", order_index=0)

    return SimpleNamespace(
        start=start,
        root=root,
        replace=replace,
        motor=motor,
        yes=yes,
        no=no,
        menu=menu,
    )
