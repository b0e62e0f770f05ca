"""SQLite storage backends for lineage persistence.

Provides the durable lineage metadata store and the local draft slot.
Blocking sqlite3 calls run in a worker thread so callers can await them.
"""

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from ..models import Lineage, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQL Schema
METADATA_SCHEMA_SQL = """
-- One JSON record per lineage
CREATE TABLE IF NOT EXISTS lineages (
    id TEXT PRIMARY KEY,
    owner_id TEXT,
    timestamp TEXT NOT NULL,
    record TEXT NOT NULL  -- JSON, camelCase keys
);

CREATE INDEX IF NOT EXISTS idx_lineages_owner ON lineages(owner_id);
"""

SNAPSHOT_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    key TEXT PRIMARY KEY,
    payload TEXT NOT NULL,  -- JSON
    updated_at TEXT NOT NULL
);
"""


class _SQLiteDatabase:
    """Shared connection handling for SQLite-backed stores.

    Args:
        db_path: Path to SQLite database file.
    """

    schema_sql = ""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, failing if not initialized."""
        if self._conn is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Initialize storage (create database, tables, directories)."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")

        self._conn.executescript(self.schema_sql)
        self._conn.commit()

        logger.info(f"Initialized SQLite storage at {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Run a blocking database operation in a worker thread."""
        conn = self._get_conn()

        def locked() -> T:
            with self._lock:
                return fn(conn)

        return await asyncio.to_thread(locked)


class SQLiteMetadataStore(_SQLiteDatabase):
    """SQLite-based lineage record store.

    Each lineage is kept as its full JSON record, with the owner and
    timestamp lifted into columns for filtering.
    """

    schema_sql = METADATA_SCHEMA_SQL

    async def put(self, lineage_id: str, lineage: Lineage) -> None:
        """Create or replace a lineage record."""
        params = (
            lineage_id,
            lineage.owner_id,
            lineage.timestamp.isoformat(),
            lineage.to_record(),
        )

        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO lineages (id, owner_id, timestamp, record)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    owner_id = excluded.owner_id,
                    timestamp = excluded.timestamp,
                    record = excluded.record
                """,
                params,
            )
            conn.commit()

        await self._run(op)

    async def get_all(self, owner_id: str) -> list[Lineage]:
        """Get every lineage owned by a user (unordered)."""

        def op(conn: sqlite3.Connection) -> list[Any]:
            return conn.execute(
                "SELECT record FROM lineages WHERE owner_id = ?", (owner_id,)
            ).fetchall()

        rows = await self._run(op)
        return [Lineage.from_record(row["record"]) for row in rows]

    async def get_one(self, lineage_id: str) -> Lineage | None:
        """Get a lineage by ID."""

        def op(conn: sqlite3.Connection) -> Any:
            return conn.execute(
                "SELECT record FROM lineages WHERE id = ?", (lineage_id,)
            ).fetchone()

        row = await self._run(op)
        if row:
            return Lineage.from_record(row["record"])
        return None

    async def delete(self, lineage_id: str) -> None:
        """Delete a lineage record."""

        def op(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM lineages WHERE id = ?", (lineage_id,))
            conn.commit()

        await self._run(op)


class SQLiteSnapshotStore(_SQLiteDatabase):
    """SQLite-based key/value slot for local draft snapshots."""

    schema_sql = SNAPSHOT_SCHEMA_SQL

    async def write(self, key: str, payload: str) -> None:
        """Replace the value stored under a key."""
        params = (key, payload, utc_now().isoformat())

        def op(conn: sqlite3.Connection) -> None:
            conn.execute(
                """
                INSERT INTO snapshots (key, payload, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                params,
            )
            conn.commit()

        await self._run(op)

    async def read(self, key: str) -> str | None:
        """Get the value stored under a key."""

        def op(conn: sqlite3.Connection) -> Any:
            return conn.execute(
                "SELECT payload FROM snapshots WHERE key = ?", (key,)
            ).fetchone()

        row = await self._run(op)
        return row["payload"] if row else None

    async def delete(self, key: str) -> None:
        """Remove a key."""

        def op(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
            conn.commit()

        await self._run(op)


__all__ = [
    "SQLiteMetadataStore",
    "SQLiteSnapshotStore",
]
