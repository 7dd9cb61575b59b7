"""SQLite key-value backend for the durable queue."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

import aiosqlite

from gestion_client.errors import PersistenceFailure
from gestion_client.storage.base import KeyValueStore
from gestion_client.utils.timeutils import utc_isoformat

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-based key-value storage.

    One row per key; writes are single-statement upserts committed
    immediately, so each ``set`` replaces the whole value atomically.
    Data persists to disk and survives restarts.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Open the database connection and create the table."""
        if self._conn is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.executescript(SCHEMA)
            await self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            self._conn = None
            raise PersistenceFailure(f"Cannot open queue database {self._db_path}: {e}") from e

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise PersistenceFailure("Store not initialized. Call initialize() first.")
        return self._conn

    async def get(self, key: str) -> str | None:
        conn = self._ensure_conn()
        try:
            async with conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot read key {key!r}: {e}") from e
        return None if row is None else str(row["value"])

    async def set(self, key: str, value: str) -> None:
        conn = self._ensure_conn()
        try:
            await conn.execute(
                """INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                   VALUES (?, ?, ?)""",
                (key, value, utc_isoformat()),
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot write key {key!r}: {e}") from e

    async def delete(self, key: str) -> bool:
        conn = self._ensure_conn()
        try:
            cursor = await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Cannot delete key {key!r}: {e}") from e
        return cursor.rowcount > 0
