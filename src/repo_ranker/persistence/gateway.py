"""Persistence gateway: write and read runs, reports, constraints and preferences.

A batch is written inside one ``transaction()`` so an interrupted write
never leaves a run without its reports. Storage failures surface as
``PersistenceError`` with a generic message; the sqlite error is chained
and logged.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional, Protocol, Union

from ..exceptions import PersistenceError, ReportNotFoundError
from ..logging_config import get_logger
from ..models import (
    ComparisonOperator,
    Constraint,
    Preference,
    QualityAttribute,
    QualityTree,
    RepositoryReport,
    freeze_metrics,
)
from .database import RankerDB

logger = get_logger(__name__)

OwnerId = Union[int, str, None]


class PersistenceGateway(Protocol):
    """Durable storage of runs, reports, constraints and preferences."""

    def transaction(self) -> Any: ...

    def save_run(
        self, owner_id: OwnerId, timestamp: datetime, request_id: Optional[str] = None
    ) -> int: ...

    def save_report(self, run_id: int, report: RepositoryReport) -> int: ...

    def save_constraints(self, run_id: int, constraints: Iterable[Constraint]) -> None: ...

    def save_preferences(self, run_id: int, preferences: Iterable[Preference]) -> None: ...

    def run_exists(self, run_id: int) -> bool: ...

    def load_reports(self, run_id: int) -> list[RepositoryReport]: ...

    def load_report(self, report_id: int) -> RepositoryReport: ...

    def load_constraints(self, run_id: int) -> list[Constraint]: ...

    def load_preferences(self, run_id: int) -> list[Preference]: ...

    def list_runs(self, limit: int = 20) -> list[dict]: ...


class SqliteGateway:
    """``PersistenceGateway`` backed by ``RankerDB``.

    The connection is shared between threads; an ``RLock`` serializes every
    operation, and a transaction holds the lock until it commits.
    """

    def __init__(self, db: Union[RankerDB, str]) -> None:
        self._db = db if isinstance(db, RankerDB) else RankerDB(db)
        self._lock = threading.RLock()
        self._in_transaction = False

    # ── lifecycle ─────────────────────────────────────────────────

    def open(self) -> "SqliteGateway":
        with self._lock, self._storage_errors("open database"):
            if not self._db.is_connected:
                self._db.connect()
        return self

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "SqliteGateway":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator["SqliteGateway"]:
        """Group writes; commit on success, roll back on any exception.

        Nested calls join the outer transaction.
        """
        with self._lock:
            if self._in_transaction:
                yield self
                return

            conn = self._conn()
            with self._storage_errors("begin transaction"):
                conn.execute("BEGIN")
            self._in_transaction = True
            try:
                yield self
            except BaseException:
                self._in_transaction = False
                self._rollback(conn)
                raise
            self._in_transaction = False
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                logger.error("Commit failed: %s", e)
                raise PersistenceError() from e

    # ── writes ────────────────────────────────────────────────────

    def save_run(
        self, owner_id: OwnerId, timestamp: datetime, request_id: Optional[str] = None
    ) -> int:
        with self._lock, self._storage_errors("save run"):
            cur = self._conn().execute(
                "INSERT INTO runs (owner_id, request_id, created_at) VALUES (?, ?, ?)",
                (
                    None if owner_id is None else str(owner_id),
                    request_id,
                    timestamp.isoformat(),
                ),
            )
            run_id = cur.lastrowid
            assert run_id is not None
            return run_id

    def save_report(self, run_id: int, report: RepositoryReport) -> int:
        with self._lock, self._storage_errors("save report"):
            cur = self._conn().execute(
                """
                INSERT INTO reports (run_id, position, location, tree, raw_metrics)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    run_id,
                    report.position,
                    report.location,
                    json.dumps(report.tree.to_dict()),
                    json.dumps(dict(report.raw_metrics), sort_keys=True),
                ),
            )
            report_id = cur.lastrowid
            assert report_id is not None
            return report_id

    def save_constraints(self, run_id: int, constraints: Iterable[Constraint]) -> None:
        rows = [(run_id, c.attribute.value, c.operator.value, c.threshold) for c in constraints]
        if not rows:
            return
        with self._lock, self._storage_errors("save constraints"):
            self._conn().executemany(
                "INSERT INTO constraints (run_id, attribute, operator, threshold) VALUES (?, ?, ?, ?)",
                rows,
            )

    def save_preferences(self, run_id: int, preferences: Iterable[Preference]) -> None:
        rows = [(run_id, p.attribute.value, p.weight) for p in preferences]
        if not rows:
            return
        with self._lock, self._storage_errors("save preferences"):
            self._conn().executemany(
                "INSERT INTO preferences (run_id, attribute, weight) VALUES (?, ?, ?)",
                rows,
            )

    # ── reads ─────────────────────────────────────────────────────

    def run_exists(self, run_id: int) -> bool:
        with self._lock, self._storage_errors("load run"):
            row = self._conn().execute("SELECT 1 FROM runs WHERE id = ?", (run_id,)).fetchone()
            return row is not None

    def load_reports(self, run_id: int) -> list[RepositoryReport]:
        with self._lock, self._storage_errors("load reports"):
            rows = self._conn().execute(
                "SELECT * FROM reports WHERE run_id = ? ORDER BY position, id", (run_id,)
            ).fetchall()
            return [_hydrate_report(r) for r in rows]

    def load_report(self, report_id: int) -> RepositoryReport:
        with self._lock, self._storage_errors("load report"):
            row = self._conn().execute(
                "SELECT * FROM reports WHERE id = ?", (report_id,)
            ).fetchone()
            if row is None:
                raise ReportNotFoundError(report_id)
            return _hydrate_report(row)

    def load_constraints(self, run_id: int) -> list[Constraint]:
        with self._lock, self._storage_errors("load constraints"):
            rows = self._conn().execute(
                "SELECT attribute, operator, threshold FROM constraints WHERE run_id = ? ORDER BY id",
                (run_id,),
            ).fetchall()
            return [
                Constraint(
                    QualityAttribute(r["attribute"]),
                    ComparisonOperator(r["operator"]),
                    r["threshold"],
                )
                for r in rows
            ]

    def load_preferences(self, run_id: int) -> list[Preference]:
        with self._lock, self._storage_errors("load preferences"):
            rows = self._conn().execute(
                "SELECT attribute, weight FROM preferences WHERE run_id = ? ORDER BY id",
                (run_id,),
            ).fetchall()
            return [Preference(QualityAttribute(r["attribute"]), r["weight"]) for r in rows]

    def list_runs(self, limit: int = 20) -> list[dict]:
        """Most recent runs first, with their report counts."""
        with self._lock, self._storage_errors("list runs"):
            rows = self._conn().execute(
                """
                SELECT
                    r.id,
                    r.owner_id,
                    r.request_id,
                    r.created_at,
                    COUNT(rep.id) AS report_count
                FROM runs r
                LEFT JOIN reports rep ON rep.run_id = r.id
                GROUP BY r.id
                ORDER BY r.id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
            return [dict(r) for r in rows]

    # ── helpers ───────────────────────────────────────────────────

    def _conn(self) -> sqlite3.Connection:
        if not self._db.is_connected:
            self.open()
        return self._db.conn

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (sqlite3.Error, ValueError, KeyError) as e:
            logger.error("Storage failure during %s: %s", operation, e)
            raise PersistenceError() from e

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning("Rollback failed: %s", e)


def _hydrate_report(row: sqlite3.Row) -> RepositoryReport:
    return RepositoryReport(
        location=row["location"],
        tree=QualityTree.from_dict(json.loads(row["tree"])),
        raw_metrics=freeze_metrics(json.loads(row["raw_metrics"])),
        position=row["position"],
        report_id=row["id"],
        run_id=row["run_id"],
    )
