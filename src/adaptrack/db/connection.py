"""SQLite access for adaptrack.

One short-lived connection per operation: services receive an open
connection from :meth:`DatabaseConnection.get_connection`, which commits when
the block exits cleanly and rolls back otherwise.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from adaptrack.db.schema import SCHEMA_VERSION, TABLES, get_schema_sql

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Opens connections to the adaptrack database file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a connection with Row factory and foreign keys enabled.

        Example:
            with db.get_connection() as conn:
                DailyLogQueries.list_logs(conn, start, end)
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        # Needed for ON DELETE CASCADE from plans and logs
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create missing tables and stamp the schema version."""
        with self.get_connection() as conn:
            conn.executescript(get_schema_sql())
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        logger.debug("Schema v%d ready at %s", SCHEMA_VERSION, self.db_path)

    def schema_version(self) -> int:
        with self.get_connection() as conn:
            return int(conn.execute("PRAGMA user_version").fetchone()[0])

    def missing_tables(self) -> list[str]:
        """Expected tables not present in the database file."""
        with self.get_connection() as conn:
            present = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        return [name for name in TABLES if name not in present]


# Global database instance (lazy loaded)
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Database at ``settings.database.path``, created on first use."""
    global _db
    if _db is None:
        from adaptrack.config import get_settings

        _db = DatabaseConnection(get_settings().database.path)
    return _db


def set_db(db: Optional[DatabaseConnection]) -> None:
    """Replace the global database (None falls back to settings on next use)."""
    global _db
    _db = db
