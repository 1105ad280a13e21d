"""Database connection management using raw sqlite3."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from bite.db.schema import get_schema_sql, migrate_entries_add_source_id

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages a SQLite database connection.

    Used as a context manager the connection is opened once and held until
    exit; otherwise each ``get_connection`` call opens a short-lived one.
    """

    def __init__(self, db_path: Path):
        """Initialize database connection manager.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Create parent directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        return conn

    def open(self) -> None:
        """Open the held connection (no-op if already open)."""
        if self._conn is None:
            logger.debug("Opening database %s", self.db_path)
            self._conn = self._connect()

    def close(self) -> None:
        """Close the held connection (no-op if not open)."""
        if self._conn is not None:
            logger.debug("Closing database %s", self.db_path)
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DatabaseConnection":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Commits on success and rolls back on error. The held connection is
        reused when open; a temporary one is closed on exit.

        Yields:
            sqlite3.Connection with Row factory enabled

        Example:
            with db.get_connection() as conn:
                rows = conn.execute("SELECT * FROM entries").fetchall()
        """
        held = self._conn is not None
        conn = self._conn if held else self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if not held:
                conn.close()

    def initialize_schema(self) -> None:
        """Create all tables if they don't exist."""
        with self.get_connection() as conn:
            conn.executescript(get_schema_sql())
            if migrate_entries_add_source_id(conn):
                logger.info("Added source_id column to entries in %s", self.db_path)

    def execute_query(
        self, query: str, params: tuple = ()
    ) -> list[sqlite3.Row]:
        """Execute a query and return results.

        Args:
            query: SQL query string
            params: Query parameters

        Returns:
            List of Row objects
        """
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchall()
