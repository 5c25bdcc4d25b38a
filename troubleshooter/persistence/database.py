"""
SQLite database connection management.

Provides async database initialization and connection factory.
Uses aiosqlite for async SQLite access.

Schema is defined in schema.sql (consolidated, idempotent).
"""

from pathlib import Path
from typing import AsyncGenerator

import aiosqlite
import structlog

from troubleshooter.core.config import settings

log = structlog.get_logger(__name__)

SCHEMA_FILE = Path(__file__).parent / "schema.sql"


async def init_database(db_path: Path | None = None) -> None:
    """
    Initialize database from consolidated schema.

    Args:
        db_path: Optional path to database file. Uses settings.database_path if not provided.

    Creates the database file if needed, applies the schema and seeds the
    global start node. Existing data is left intact.
    """
    db_path = db_path or settings.database_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    log.info("initializing_database", path=str(db_path))

    if not SCHEMA_FILE.exists():
        log.error("schema_file_not_found", path=str(SCHEMA_FILE))
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_FILE}")

    async with aiosqlite.connect(db_path) as db:
        await db.execute("PRAGMA foreign_keys = ON")
        await db.execute("PRAGMA journal_mode = WAL")
        await db.executescript(SCHEMA_FILE.read_text())
        await db.commit()

    log.info("database_initialized", path=str(db_path))


async def _open(db_path: Path | str) -> aiosqlite.Connection:
    db = await aiosqlite.connect(db_path)
    await db.execute("PRAGMA foreign_keys = ON")
    db.row_factory = aiosqlite.Row
    return db


async def get_db() -> AsyncGenerator[aiosqlite.Connection, None]:
    """
    Async generator that yields a database connection.

    Use as a FastAPI dependency:

        @router.get("/nodes")
        async def list_nodes(db: aiosqlite.Connection = Depends(get_db)):
            ...

    The connection is automatically closed when the request completes.
    """
    db = await _open(settings.database_path)
    try:
        yield db
    finally:
        await db.close()


async def get_db_connection() -> aiosqlite.Connection:
    """
    Get a single database connection (for non-FastAPI contexts).

    Caller is responsible for closing the connection.
    """
    return await _open(settings.database_path)


async def check_database_health() -> dict:
    """
    Check database health for health endpoint.

    Returns:
        Dict with health status and basic metrics.
    """
    try:
        async with aiosqlite.connect(settings.database_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM sessions")
            row = await cursor.fetchone()
            session_count = row[0] if row else 0

            cursor = await db.execute("SELECT COUNT(*) FROM nodes WHERE is_active = 1")
            row = await cursor.fetchone()
            node_count = row[0] if row else 0

            cursor = await db.execute("PRAGMA integrity_check")
            integrity = await cursor.fetchone()

            return {
                "status": "healthy",
                "session_count": session_count,
                "active_node_count": node_count,
                "integrity": integrity[0] if integrity else "unknown",
                "path": str(settings.database_path),
            }
    except Exception as e:
        log.error("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
