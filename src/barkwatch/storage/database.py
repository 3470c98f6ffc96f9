"""SQLite durable store for bark events, training sessions and settings."""

import json
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite

from barkwatch.monitoring.interfaces import DurableStore
from barkwatch.monitoring.logging_utils import get_logger
from barkwatch.storage.config import SCHEMA_VERSION, SETTINGS_KEY
from barkwatch.storage.exceptions import DatabaseError, SchemaError

logger = get_logger(__name__)


class SQLiteStore(DurableStore):
    """SQLite database implementing the durable store contract."""

    def __init__(self, db_path: str, wal_mode: bool = True) -> None:
        """
        Initialize database connection settings.

        Args:
            db_path: Path to SQLite database file (use ":memory:" for in-memory)
            wal_mode: Enable WAL mode for concurrent access
        """
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the connection and create the schema if needed."""
        if self._connection is None:
            try:
                if self.db_path != ":memory:":
                    directory = os.path.dirname(self.db_path)
                    if directory:
                        os.makedirs(directory, exist_ok=True)
                self._connection = await aiosqlite.connect(self.db_path)
                self._connection.row_factory = aiosqlite.Row

                # WAL is not supported for :memory:
                if self.wal_mode and self.db_path != ":memory:":
                    await self._connection.execute("PRAGMA journal_mode=WAL")
            except (OSError, aiosqlite.Error) as e:
                raise DatabaseError(f"Failed to open database {self.db_path}: {e}") from e

        await self._create_schema()
        logger.debug(f"Database ready at {self.db_path}")

    async def _create_schema(self) -> None:
        """Create database schema with tables and indexes."""
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INTEGER PRIMARY KEY,
                        applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )

                cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
                result = await cursor.fetchone()
                current_version = result[0] if result and result[0] is not None else 0

                if current_version > SCHEMA_VERSION:
                    raise SchemaError(
                        f"Database schema version {current_version} is newer than "
                        f"supported version {SCHEMA_VERSION}"
                    )
                if current_version < SCHEMA_VERSION:
                    await self._apply_migrations(conn, current_version)

                await conn.commit()
        except aiosqlite.Error as e:
            raise SchemaError(f"Failed to create schema: {e}") from e

    async def _apply_migrations(
        self, conn: aiosqlite.Connection, from_version: int
    ) -> None:
        """
        Apply database migrations.

        Args:
            conn: Database connection
            from_version: Current schema version
        """
        if from_version < 1:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS bark_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TIMESTAMP NOT NULL,
                    volume REAL NOT NULL,
                    duration REAL NOT NULL,
                    confidence REAL NOT NULL,
                    session_id TEXT
                )
                """
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_bark_events_session ON bark_events(session_id)"
            )

            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS training_sessions (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    date TIMESTAMP NOT NULL,
                    duration_seconds INTEGER NOT NULL,
                    barks_detected INTEGER NOT NULL,
                    success INTEGER NOT NULL,
                    notes TEXT,
                    photos TEXT
                )
                """
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_sessions_date ON training_sessions(date)"
            )

            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

            await conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Get database connection context manager.

        Yields:
            Database connection

        Raises:
            DatabaseError: If connection is not initialized
        """
        if self._connection is None:
            raise DatabaseError("Database not initialized")
        yield self._connection

    async def get_schema_version(self) -> int:
        """
        Get current schema version.

        Returns:
            Schema version number
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            result = await cursor.fetchone()
            return result[0] if result and result[0] is not None else 0

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def append_bark_event(self, record: dict[str, Any]) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO bark_events (
                        timestamp, volume, duration, confidence, session_id
                    ) VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        record["timestamp"],
                        record["volume"],
                        record["duration"],
                        record["confidence"],
                        record.get("session_id"),
                    ),
                )
                await conn.commit()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to insert bark event: {e}") from e

    async def trim_bark_events(self, keep: int) -> int:
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    """
                    DELETE FROM bark_events
                    WHERE id NOT IN (
                        SELECT id FROM bark_events ORDER BY id DESC LIMIT ?
                    )
                    """,
                    (keep,),
                )
                removed = cursor.rowcount
                await conn.commit()
                return max(removed, 0)
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to trim bark events: {e}") from e

    async def list_bark_events(self) -> list[dict[str, Any]]:
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT timestamp, volume, duration, confidence, session_id
                    FROM bark_events
                    ORDER BY id ASC
                    """
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to list bark events: {e}") from e

        return [
            {
                "timestamp": row["timestamp"],
                "volume": row["volume"],
                "duration": row["duration"],
                "confidence": row["confidence"],
                "session_id": row["session_id"],
            }
            for row in rows
        ]

    async def append_session(self, record: dict[str, Any]) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO training_sessions (
                        id, date, duration_seconds, barks_detected, success, notes, photos
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record["id"],
                        record["date"],
                        record["duration_seconds"],
                        record["barks_detected"],
                        1 if record["success"] else 0,
                        record.get("notes"),
                        json.dumps(record["photos"]) if record.get("photos") else None,
                    ),
                )
                await conn.commit()
        except aiosqlite.IntegrityError as e:
            raise DatabaseError(f"Session with ID {record['id']} already exists") from e
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to insert session: {e}") from e

    async def list_sessions(self) -> list[dict[str, Any]]:
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    "SELECT * FROM training_sessions ORDER BY seq ASC"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to list sessions: {e}") from e

        return [self._row_to_session(row) for row in rows]

    async def read_settings(self) -> dict[str, Any] | None:
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    "SELECT value FROM settings WHERE key = ?", (SETTINGS_KEY,)
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to read settings: {e}") from e

        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Stored settings are corrupt: {e}") from e

    async def write_settings(self, record: dict[str, Any]) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    (SETTINGS_KEY, json.dumps(record)),
                )
                await conn.commit()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to write settings: {e}") from e

    async def clear(self) -> None:
        try:
            async with self._get_connection() as conn:
                await conn.execute("DELETE FROM bark_events")
                await conn.execute("DELETE FROM training_sessions")
                await conn.execute("DELETE FROM settings")
                await conn.commit()
        except aiosqlite.Error as e:
            raise DatabaseError(f"Failed to clear database: {e}") from e

    async def get_statistics(self) -> dict[str, int]:
        """
        Get record counts.

        Returns:
            Dictionary with bark event and session counts
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM bark_events")
            events = (await cursor.fetchone())[0]

            cursor = await conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(success), 0) FROM training_sessions"
            )
            sessions, successful = await cursor.fetchone()

            return {
                "bark_events": events,
                "sessions": sessions,
                "successful_sessions": successful,
            }

    def _row_to_session(self, row: aiosqlite.Row) -> dict[str, Any]:
        """
        Convert database row to a session record.

        Args:
            row: Database row

        Returns:
            Session record dictionary
        """
        return {
            "id": row["id"],
            "date": row["date"],
            "duration_seconds": row["duration_seconds"],
            "barks_detected": row["barks_detected"],
            "success": bool(row["success"]),
            "notes": row["notes"],
            "photos": json.loads(row["photos"]) if row["photos"] else [],
        }
