"""Summary: SQLite storage implementation for per-platform state.

Importance: Provides server-side persistence for deployments that avoid secret cookies.
Alternatives: Use an ORM or an external key-value store.
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class SqliteStateStore:
    """Summary: SQLite-backed PlatformStateStore scoped to one owner.

    Importance: Mirrors cookie TTL semantics with an expires_at column.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str, owner: str, clock=time.time) -> None:
        """Summary: Initialize the storage with a database path and owner scope.

        Importance: Allows configurable database location per environment.
        Alternatives: Hardcode a default path in the class.
        """

        self._db_path = Path(db_path)
        self._owner = owner
        self._clock = clock

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the first request.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        with self._connection() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS platform_state (
                    owner TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    http_only INTEGER NOT NULL DEFAULT 1,
                    expires_at REAL NOT NULL,
                    PRIMARY KEY (owner, key)
                )
                """
            )
            connection.commit()

    def get(self, key: str) -> str | None:
        """Summary: Return a live entry value, purging it if expired.

        Importance: Expired entries behave exactly like absent ones.
        Alternatives: Purge with a periodic background job.
        """

        with self._connection() as connection:
            row = connection.execute(
                "SELECT value, expires_at FROM platform_state WHERE owner = ? AND key = ?",
                (self._owner, key),
            ).fetchone()
            if row is None:
                return None
            if row["expires_at"] <= self._clock():
                connection.execute(
                    "DELETE FROM platform_state WHERE owner = ? AND key = ?",
                    (self._owner, key),
                )
                connection.commit()
                return None
            return row["value"]

    def set(self, key: str, value: str, max_age_seconds: int, http_only: bool = True) -> None:
        if max_age_seconds <= 0:
            self.delete(key)
            return
        with self._connection() as connection:
            connection.execute(
                """
                INSERT INTO platform_state (owner, key, value, http_only, expires_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(owner, key) DO UPDATE SET
                    value = excluded.value,
                    http_only = excluded.http_only,
                    expires_at = excluded.expires_at
                """,
                (self._owner, key, value, int(http_only), self._clock() + max_age_seconds),
            )
            connection.commit()

    def delete(self, key: str) -> None:
        with self._connection() as connection:
            connection.execute(
                "DELETE FROM platform_state WHERE owner = ? AND key = ?",
                (self._owner, key),
            )
            connection.commit()

    def keys(self) -> list[str]:
        with self._connection() as connection:
            rows = connection.execute(
                "SELECT key FROM platform_state WHERE owner = ? AND expires_at > ? ORDER BY key",
                (self._owner, self._clock()),
            ).fetchall()
        return [row["key"] for row in rows]

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Provide a SQLite connection context.

        Importance: Ensures connections close reliably.
        Alternatives: Keep a persistent connection open for the app lifecycle.
        """

        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        try:
            yield connection
        finally:
            connection.close()
