"""SQLite event store.

A single-file durable backend.  Blocking ``sqlite3`` calls run in a worker
thread via :func:`asyncio.to_thread`; every driver failure is raised as
:class:`pydevlog.exceptions.StoreError`.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from pydevlog.backends.protocols import check_group_fields
from pydevlog.exceptions import StoreError
from pydevlog.models import Event, EventFilter, GroupCount, Page, datetime_to_ms, ms_to_datetime

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id INTEGER NOT NULL,
    device_id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    client_timestamp INTEGER NOT NULL,
    category TEXT NOT NULL CHECK (category IN ('record', 'warning', 'error')),
    log_key TEXT NOT NULL,
    value TEXT NOT NULL,
    received_ms INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_events_device ON events (device_id, received_ms);
CREATE INDEX IF NOT EXISTS idx_events_project ON events (project_id, received_ms);
CREATE INDEX IF NOT EXISTS idx_events_session ON events (session_id);
CREATE INDEX IF NOT EXISTS idx_events_category ON events (category, received_ms);
"""

# Model field -> column.  "key" is an SQL keyword.
_COLUMNS: dict[str, str] = {
    "project_id": "project_id",
    "device_id": "device_id",
    "session_id": "session_id",
    "category": "category",
    "key": "log_key",
}

_SELECT = (
    "SELECT id, project_id, device_id, session_id, client_timestamp, category, log_key, value, received_ms FROM events"
)


def _where(event_filter: EventFilter) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if event_filter.project_id is not None:
        clauses.append("project_id = ?")
        params.append(event_filter.project_id)
    if event_filter.device_id is not None:
        clauses.append("device_id = ?")
        params.append(event_filter.device_id)
    if event_filter.session_id is not None:
        clauses.append("session_id = ?")
        params.append(event_filter.session_id)
    if event_filter.category is not None:
        clauses.append("category = ?")
        params.append(str(event_filter.category))
    if event_filter.start is not None:
        clauses.append("received_ms >= ?")
        params.append(datetime_to_ms(event_filter.start))
    if event_filter.end is not None:
        clauses.append("received_ms <= ?")
        params.append(datetime_to_ms(event_filter.end))
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        sequence_id=row["id"],
        project_id=row["project_id"],
        device_id=row["device_id"],
        session_id=row["session_id"],
        client_timestamp=row["client_timestamp"],
        category=row["category"],
        key=row["log_key"],
        value=row["value"],
        server_received_at=ms_to_datetime(row["received_ms"]),
    )


class SqliteEventStore:
    """Event store backed by a local SQLite database.

    Parameters
    ----------
    path : str or Path
        Database file, or ``":memory:"``.
    """

    def __init__(self, path: str | Path = ":memory:") -> None:
        self._path = str(path)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self._path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open event database {self._path}: {exc}", operation="open") from exc
        _logger.debug("SQLite event store ready at %s", self._path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        def _locked() -> T:
            with self._lock:
                return fn(self._conn)

        try:
            return await asyncio.to_thread(_locked)
        except sqlite3.Error as exc:
            _logger.error("SQLite %s failed: %s", operation, exc)
            raise StoreError(f"event store {operation} failed: {exc}", operation=operation) from exc

    async def append(self, event: Event) -> Event:
        def _insert(conn: sqlite3.Connection) -> int:
            with conn:
                cursor = conn.execute(
                    "INSERT INTO events (project_id, device_id, session_id, client_timestamp, category, log_key, value,"
                    " received_ms) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        event.project_id,
                        event.device_id,
                        event.session_id,
                        event.client_timestamp,
                        str(event.category),
                        event.key,
                        event.value,
                        datetime_to_ms(event.server_received_at),
                    ),
                )
            return int(cursor.lastrowid or 0)

        sequence_id = await self._run("append", _insert)
        return event.model_copy(update={"sequence_id": sequence_id})

    async def get(self, sequence_id: int) -> Event | None:
        def _select_one(conn: sqlite3.Connection) -> sqlite3.Row | None:
            return conn.execute(f"{_SELECT} WHERE id = ?", (sequence_id,)).fetchone()

        row = await self._run("get", _select_one)
        return _row_to_event(row) if row is not None else None

    async def query(self, event_filter: EventFilter, page: Page | None = None) -> list[Event]:
        where, params = _where(event_filter)
        sql = f"{_SELECT}{where} ORDER BY received_ms DESC, id DESC"
        if page is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([page.page_size, page.offset])

        def _select(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(sql, params).fetchall()

        rows = await self._run("query", _select)
        return [_row_to_event(row) for row in rows]

    async def count(self, event_filter: EventFilter) -> int:
        where, params = _where(event_filter)

        def _count(conn: sqlite3.Connection) -> int:
            return int(conn.execute(f"SELECT COUNT(*) FROM events{where}", params).fetchone()[0])

        return await self._run("count", _count)

    async def group_count(self, event_filter: EventFilter, group_by: Sequence[str]) -> list[GroupCount]:
        check_group_fields(group_by)

        columns = [_COLUMNS[name] for name in group_by]
        where, params = _where(event_filter)
        column_list = ", ".join(columns)
        sql = (
            f"SELECT {column_list}, COUNT(id) AS n, MIN(received_ms) AS first_ms, MAX(received_ms) AS last_ms"
            f" FROM events{where} GROUP BY {column_list}"
        )

        def _grouped(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(sql, params).fetchall()

        rows = await self._run("group_count", _grouped)
        return [
            GroupCount(
                group={name: str(row[column]) for name, column in zip(group_by, columns, strict=True)},
                count=row["n"],
                min_timestamp=ms_to_datetime(row["first_ms"]),
                max_timestamp=ms_to_datetime(row["last_ms"]),
            )
            for row in rows
        ]
