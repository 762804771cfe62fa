"""SQLite database holding analysis runs, reports, constraints and preferences."""

import sqlite3
from pathlib import Path
from typing import Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1

MEMORY = ":memory:"


class RankerDB:
    """Manages the ranker SQLite database.

    Usage::

        with RankerDB(".repo-ranker/ranker.db") as db:
            db.conn.execute("SELECT * FROM runs")

    ``":memory:"`` opens a private in-memory database.
    """

    def __init__(self, path: str = MEMORY) -> None:
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise RuntimeError("RankerDB is not connected. Use as context manager or call connect().")
        return self._conn

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    # ── lifecycle ─────────────────────────────────────────────────

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        # Transactions are managed explicitly with BEGIN/COMMIT.
        conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
        if self.path != MEMORY:
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        self._conn = conn
        self._migrate()
        logger.debug("Ranker DB connected at %s", self.path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "RankerDB":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables."""
        c = self.conn

        c.execute("BEGIN")
        try:
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER NOT NULL
                )
                """
            )
            row = c.execute("SELECT version FROM schema_version").fetchone()
            if row is None:
                c.execute(
                    "INSERT INTO schema_version (version) VALUES (?)",
                    (_SCHEMA_VERSION,),
                )

            # ── runs ─────────────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    owner_id    TEXT,
                    request_id  TEXT,
                    created_at  TEXT    NOT NULL
                )
                """
            )

            # ── reports ──────────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS reports (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id      INTEGER NOT NULL REFERENCES runs(id) ON DELETE CASCADE,
                    position    INTEGER NOT NULL,
                    location    TEXT    NOT NULL,
                    tree        TEXT    NOT NULL,
                    raw_metrics TEXT    NOT NULL DEFAULT '{}'
                )
                """
            )

            # ── constraints ──────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS constraints (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id      INTEGER NOT NULL REFERENCES runs(id) ON DELETE CASCADE,
                    attribute   TEXT    NOT NULL,
                    operator    TEXT    NOT NULL,
                    threshold   REAL    NOT NULL
                )
                """
            )

            # ── preferences ──────────────────────────────────────────
            c.execute(
                """
                CREATE TABLE IF NOT EXISTS preferences (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id      INTEGER NOT NULL REFERENCES runs(id) ON DELETE CASCADE,
                    attribute   TEXT    NOT NULL,
                    weight      REAL    NOT NULL
                )
                """
            )

            # ── indexes ──────────────────────────────────────────────
            c.execute("CREATE INDEX IF NOT EXISTS idx_reports_run ON reports(run_id)")
            c.execute("CREATE INDEX IF NOT EXISTS idx_constraints_run ON constraints(run_id)")
            c.execute("CREATE INDEX IF NOT EXISTS idx_preferences_run ON preferences(run_id)")
            c.execute("COMMIT")
        except Exception:
            c.execute("ROLLBACK")
            raise
