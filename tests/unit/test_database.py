"""Tests for database module."""

import pytest
import tempfile
from pathlib import Path

import aiosqlite

from troubleshooter.persistence.database import (
    init_database,
    get_db_connection,
    check_database_health,
)


@pytest.mark.asyncio
async def test_init_database_creates_file():
    """Database initialization creates the database file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "nested" / "test.db"

        assert not db_path.exists()

        await init_database(db_path)

        assert db_path.exists()


@pytest.mark.asyncio
async def test_init_database_creates_tables():
    """Database initialization creates all required tables."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)

        async with aiosqlite.connect(db_path) as db:
            cursor = await db.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            )
            tables = [row[0] for row in await cursor.fetchall()]

        assert "nodes" in tables
        assert "connections" in tables
        assert "sessions" in tables


@pytest.mark.asyncio
async def test_init_database_is_idempotent():
    """Re-running init keeps data and does not duplicate the seed."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)
        await init_database(db_path)

        async with aiosqlite.connect(db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM nodes WHERE semantic_id = 'start'")
            row = await cursor.fetchone()

        assert row[0] == 1


@pytest.mark.asyncio
async def test_get_db_connection(test_db):
    """get_db_connection returns a usable connection."""
    db = await get_db_connection()
    try:
        cursor = await db.execute("SELECT COUNT(*) FROM sessions")
        row = await cursor.fetchone()
        assert row[0] == 0
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_check_database_health(test_db):
    """Health check reports counts and integrity."""
    health = await check_database_health()

    assert health["status"] == "healthy"
    assert health["session_count"] == 0
    assert health["active_node_count"] == 1
    assert health["integrity"] == "ok"


@pytest.mark.asyncio
async def test_check_database_health_without_schema(monkeypatch, tmp_path):
    from troubleshooter.core.config import settings

    monkeypatch.setattr(settings, "database_path", tmp_path / "empty.db")

    health = await check_database_health()

    assert health["status"] == "unhealthy"
