"""SQLite connection layer for the per-domain RAG index."""

from __future__ import annotations

import sqlite3
from pathlib import Path

BUSY_TIMEOUT_MS = 5_000


class Database:
    """SQLite database holding chunks, index metadata, and site facts."""

    def __init__(self, db_path: Path | str) -> None:
        """Store the database path. Call connect() to open the connection.

        Args:
            db_path: Path to the SQLite database file (created if missing,
                along with its parent directory).
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open a connection and return it."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        # status and ask may read while index holds the write lock
        conn.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
        return conn

    def __enter__(self) -> sqlite3.Connection:
        """Open the database and return the connection (context manager support)."""
        self._conn = self.connect()
        return self._conn

    def __exit__(self, *args: object) -> None:
        """Close the connection when leaving the context manager."""
        if self._conn:
            self._conn.close()
            self._conn = None
