"""SQLite-backed report store.

Uses Python's built-in sqlite3 with asyncio.to_thread() for async
operations.  A single connection is shared and serialised with a lock;
the drain loop is the only writer during a run.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from pystumbler.exceptions import StumblerStoreError
from pystumbler.models.observation import QueuedObservation
from pystumbler.store.base import DeleteReport, StoreOperation, UpdateRetryNumber, UpsertStat

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# AUTOINCREMENT keeps ids strictly increasing even after the tail of the
# queue has been deleted.
CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time INTEGER NOT NULL,
    lat REAL NOT NULL,
    lon REAL NOT NULL,
    altitude INTEGER,
    accuracy INTEGER,
    radio TEXT NOT NULL DEFAULT '',
    cell TEXT NOT NULL DEFAULT '[]',
    wifi TEXT NOT NULL DEFAULT '[]',
    cell_count INTEGER NOT NULL DEFAULT 0,
    wifi_count INTEGER NOT NULL DEFAULT 0,
    retry_number INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS stats (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_REPORT_COLUMNS = (
    "time",
    "lat",
    "lon",
    "altitude",
    "accuracy",
    "radio",
    "cell",
    "wifi",
    "cell_count",
    "wifi_count",
    "retry_number",
)

_SELECT_WINDOW = (
    "SELECT id, " + ", ".join(_REPORT_COLUMNS) + " FROM reports"
    " WHERE id > ? AND id <= ? ORDER BY id LIMIT ?"
)


class SqliteReportStore:
    """:class:`~pystumbler.store.base.ReportStore` over a SQLite file.

    Usage::

        async with SqliteReportStore("reports.db") as store:
            await store.insert_report(time=..., lat=..., lon=...)
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    async def __aenter__(self) -> SqliteReportStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def initialize(self) -> None:
        """Open the database and create tables if needed."""
        if self._conn is not None:
            return

        def _init_db() -> sqlite3.Connection:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(CREATE_SCHEMA_SQL)
            return conn

        try:
            self._conn = await asyncio.to_thread(_init_db)
        except sqlite3.Error as exc:
            raise StumblerStoreError(f"Cannot open {self._db_path}: {exc}", operation="initialize") from exc
        _logger.debug("Opened report store %s", self._db_path)

    async def close(self) -> None:
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await asyncio.to_thread(conn.close)

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StumblerStoreError("Store not initialized. Use 'async with SqliteReportStore(...)'")
        return self._conn

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        conn = self._require_conn()

        def _locked() -> T:
            with self._lock:
                return fn(conn)

        try:
            return await asyncio.to_thread(_locked)
        except sqlite3.Error as exc:
            _logger.error("%s failed: %s", operation, exc)
            raise StumblerStoreError(f"{operation} failed: {exc}", operation=operation) from exc

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    async def insert_report(
        self,
        *,
        time: int,
        lat: float,
        lon: float,
        altitude: int | None = None,
        accuracy: int | None = None,
        radio: str = "",
        cell: str = "[]",
        wifi: str = "[]",
        cell_count: int = 0,
        wifi_count: int = 0,
    ) -> int:
        """Append an observation to the queue and return its id."""
        values = (time, lat, lon, altitude, accuracy, radio, cell, wifi, cell_count, wifi_count, 0)
        placeholders = ", ".join("?" for _ in _REPORT_COLUMNS)
        query = f"INSERT INTO reports ({', '.join(_REPORT_COLUMNS)}) VALUES ({placeholders})"

        def _insert(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute(query, values)
            return int(cursor.lastrowid or 0)

        return await self._run("insert_report", _insert)

    async def max_id(self) -> int:
        def _max(conn: sqlite3.Connection) -> int:
            row = conn.execute("SELECT MAX(id) FROM reports").fetchone()
            return int(row[0]) if row is not None and row[0] is not None else 0

        return await self._run("max_id", _max)

    async def count(self) -> int:
        def _count(conn: sqlite3.Connection) -> int:
            return int(conn.execute("SELECT COUNT(*) FROM reports").fetchone()[0])

        return await self._run("count", _count)

    async def list_reports(self) -> list[QueuedObservation]:
        """Every queued observation in id order."""
        async with self.open_window(0, await self.max_id(), -1) as rows:
            return list(rows)

    @asynccontextmanager
    async def open_window(
        self, min_id_exclusive: int, max_id_inclusive: int, limit: int
    ) -> AsyncIterator[Sequence[QueuedObservation]]:
        """Read one window; the cursor is closed on every exit path."""
        params = (min_id_exclusive, max_id_inclusive, limit)
        cursor = await self._run("open_window", lambda conn: conn.execute(_SELECT_WINDOW, params))
        try:
            rows = await self._run("open_window", lambda _conn: cursor.fetchall())
            try:
                observations = [QueuedObservation.model_validate(dict(row)) for row in rows]
            except ValidationError as exc:
                raise StumblerStoreError(f"Corrupt report row: {exc}", operation="open_window") from exc
            yield observations
        finally:
            await self._run("close_window", lambda _conn: cursor.close())

    async def delete_range(self, min_id: int, max_id: int) -> int:
        def _delete(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute("DELETE FROM reports WHERE id BETWEEN ? AND ?", (min_id, max_id))
            return cursor.rowcount

        deleted = await self._run("delete_range", _delete)
        _logger.debug("Deleted %d reports in [%d, %d]", deleted, min_id, max_id)
        return deleted

    async def apply_batch(self, operations: Sequence[StoreOperation]) -> None:
        ops = list(operations)
        if not ops:
            return

        def _apply(conn: sqlite3.Connection) -> None:
            with conn:
                for op in ops:
                    if isinstance(op, UpdateRetryNumber):
                        conn.execute(
                            "UPDATE reports SET retry_number = ? WHERE id = ?",
                            (op.retry_number, op.report_id),
                        )
                    elif isinstance(op, DeleteReport):
                        conn.execute("DELETE FROM reports WHERE id = ?", (op.report_id,))
                    elif isinstance(op, UpsertStat):
                        conn.execute(
                            "INSERT INTO stats (key, value) VALUES (?, ?)"
                            " ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                            (op.key, op.value),
                        )
                    else:
                        raise sqlite3.ProgrammingError(f"Unsupported store operation: {op!r}")

        await self._run("apply_batch", _apply)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def read_stats(self) -> dict[str, str]:
        def _read(conn: sqlite3.Connection) -> dict[str, str]:
            return {row["key"]: row["value"] for row in conn.execute("SELECT key, value FROM stats")}

        return await self._run("read_stats", _read)
