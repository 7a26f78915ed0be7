"""Durable key-value storage backed by SQLite.

Each key holds one JSON document as text. The persistence layer above decides
how values are encoded, validated, and recovered.
"""

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from zenith.core.config import settings


logger = logging.getLogger(__name__)


KV_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated TEXT NOT NULL
)
"""


class StorageError(RuntimeError):
    """Raised when the underlying store cannot be read or written."""


class KeyValueStore(ABC):
    """Abstract async key-value store."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the store."""

    @abstractmethod
    async def close(self) -> None:
        """Release the store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw value for a key, or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a raw value, replacing any previous one."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """List stored keys."""

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.database_path
    return Path(path_str).expanduser().resolve()


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value store using a single SQLite table via aiosqlite."""

    def __init__(self, db_path: str | None = None) -> None:
        self.db_path = get_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the connection and create the table if needed."""
        if self._conn is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = await aiosqlite.connect(str(self.db_path))
            await self._conn.execute("PRAGMA journal_mode = WAL")
            await self._conn.execute(KV_TABLE_SCHEMA)
            await self._conn.commit()
        except aiosqlite.Error as e:
            msg = f"Failed to open key-value store at {self.db_path}: {e}"
            raise StorageError(msg) from e

        logger.info("Opened SQLite key-value store", extra={"db_path": str(self.db_path)})

    async def close(self) -> None:
        """Close the connection if it is open."""
        if self._conn is None:
            return
        try:
            await self._conn.close()
            logger.info("Closed SQLite key-value store", extra={"db_path": str(self.db_path)})
        except aiosqlite.Error as e:
            logger.warning("Error closing SQLite key-value store", extra={"error": str(e)})
        finally:
            self._conn = None

    async def _get_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            await self.connect()
        if self._conn is None:
            msg = f"Key-value store at {self.db_path} is not connected"
            raise StorageError(msg)
        return self._conn

    async def get(self, key: str) -> str | None:
        try:
            conn = await self._get_conn()
            cursor = await conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error("kv_get_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to read key {key}: {e}"
            raise StorageError(msg) from e

        if row is None:
            return None
        return row[0]

    async def set(self, key: str, value: str) -> None:
        try:
            conn = await self._get_conn()
            await conn.execute(
                "INSERT INTO kv_store (key, value, updated) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated = excluded.updated",
                (key, value, datetime.now(UTC).isoformat()),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("kv_set_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to write key {key}: {e}"
            raise StorageError(msg) from e

        logger.debug("Stored value", extra={"key": key, "size": len(value)})

    async def delete(self, key: str) -> None:
        try:
            conn = await self._get_conn()
            await conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error("kv_delete_failed", extra={"key": key, "error": str(e)})
            msg = f"Failed to delete key {key}: {e}"
            raise StorageError(msg) from e

    async def keys(self) -> list[str]:
        try:
            conn = await self._get_conn()
            cursor = await conn.execute("SELECT key FROM kv_store ORDER BY key")
            rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            msg = f"Failed to list keys: {e}"
            raise StorageError(msg) from e
        return [row[0] for row in rows]
