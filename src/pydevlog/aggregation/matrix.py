"""Session x key organization matrix.

A day's events become one row per session and one column per observed key.
A day range is built as one independent matrix per day, folded in date order
into a combined matrix:

* a session seen on several days is a single row whose start is its earliest
  event anywhere in the range; rows are re-indexed over the whole range
* cells follow last-write-wins by ``server_received_at``, within a day and
  across days (day windows are disjoint, so a later day always wins)
* columns are the union of every day's columns in first-seen order
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, tzinfo

from pydevlog.aggregation.windows import day_window, iter_days, parse_date, validate_day_range
from pydevlog.backends.protocols import EventStore
from pydevlog.models import Event, EventFilter, OrganizationMatrix, OrganizationMatrixRange, RowMetadata

_logger = logging.getLogger(__name__)


class _MatrixFold:
    """Mutable accumulator behind both the day build and the range combine."""

    def __init__(self) -> None:
        self.first_seen: dict[str, datetime] = {}
        self.cells: dict[str, dict[str, str]] = {}
        # dict keeps first-seen order
        self.columns: dict[str, None] = {}

    def observe_row(self, row_key: str, first_timestamp: datetime) -> None:
        current = self.first_seen.get(row_key)
        if current is None or first_timestamp < current:
            self.first_seen[row_key] = first_timestamp
        self.cells.setdefault(row_key, {})

    def put(self, row_key: str, column_key: str, value: str) -> None:
        self.cells[row_key][column_key] = value
        self.columns.setdefault(column_key, None)

    def add_event(self, event: Event) -> None:
        self.observe_row(event.session_id, event.server_received_at)
        self.put(event.session_id, event.key, event.value)

    def add_matrix(self, matrix: OrganizationMatrix) -> None:
        for column_key in matrix.column_keys:
            self.columns.setdefault(column_key, None)
        for row_key in matrix.row_keys:
            self.observe_row(row_key, matrix.row_metadata[row_key].first_timestamp)
            for column_key, value in matrix.cells.get(row_key, {}).items():
                self.put(row_key, column_key, value)

    def to_matrix(self, project_id: int, start_date: date, end_date: date) -> OrganizationMatrix:
        row_keys = sorted(self.first_seen, key=lambda row: (self.first_seen[row], row))
        return OrganizationMatrix(
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
            row_keys=row_keys,
            column_keys=list(self.columns),
            cells={row: dict(self.cells[row]) for row in row_keys if self.cells[row]},
            row_metadata={
                row: RowMetadata(index=position, first_timestamp=self.first_seen[row])
                for position, row in enumerate(row_keys, start=1)
            },
        )


def build_day_matrix(project_id: int, day: date, events: Iterable[Event]) -> OrganizationMatrix:
    """Pivot one day's events.  Input order does not matter."""
    fold = _MatrixFold()
    for event in sorted(events, key=lambda e: (e.server_received_at, e.sequence_id or 0)):
        fold.add_event(event)
    return fold.to_matrix(project_id, day, day)


def combine_matrices(
    project_id: int,
    start_date: date,
    end_date: date,
    daily: Iterable[OrganizationMatrix],
) -> OrganizationMatrix:
    """Fold per-day matrices into one matrix covering ``[start_date, end_date]``."""
    fold = _MatrixFold()
    for matrix in sorted(daily, key=lambda m: m.start_date):
        fold.add_matrix(matrix)
    return fold.to_matrix(project_id, start_date, end_date)


def apply_column_labels(matrix: OrganizationMatrix, labels: Mapping[str, str] | None) -> OrganizationMatrix:
    """Rename columns through *labels*; unmapped keys pass through.

    Keys that map onto the same label share the first column position and
    the value of the later column wins.
    """
    if not labels:
        return matrix

    columns: dict[str, None] = {}
    for column_key in matrix.column_keys:
        columns.setdefault(labels.get(column_key, column_key), None)

    cells: dict[str, dict[str, str]] = {}
    for row_key, row in matrix.cells.items():
        labelled: dict[str, str] = {}
        for column_key in matrix.column_keys:
            if column_key in row:
                labelled[labels.get(column_key, column_key)] = row[column_key]
        cells[row_key] = labelled

    return matrix.model_copy(update={"column_keys": list(columns), "cells": cells})


class MatrixBuilder:
    """Query the event store day by day and build organization matrices.

    Parameters
    ----------
    store : EventStore
        Source of events.
    tz : tzinfo
        Time zone cutting calendar days.
    max_range_days : int
        Widest accepted day range.
    """

    def __init__(self, store: EventStore, *, tz: tzinfo, max_range_days: int) -> None:
        self._store = store
        self._tz = tz
        self._max_range_days = max_range_days

    async def build_day(self, project_id: int, day: date | str) -> OrganizationMatrix:
        day = parse_date(day)
        start, end = day_window(day, self._tz)
        events = await self._store.query(EventFilter(project_id=project_id, start=start, end=end))
        matrix = build_day_matrix(project_id, day, events)
        _logger.debug(
            "Matrix project=%s day=%s rows=%d columns=%d",
            project_id,
            day.isoformat(),
            matrix.total_rows,
            matrix.total_columns,
        )
        return matrix

    async def build_range(
        self,
        project_id: int,
        start_date: date | str,
        end_date: date | str,
    ) -> OrganizationMatrixRange:
        """Per-day matrices for ``[start_date, end_date]`` plus their combination.

        Raises
        ------
        RangeError
            Malformed dates, ``start_date > end_date`` or a range wider than
            ``max_range_days``.
        """
        start = parse_date(start_date)
        end = parse_date(end_date)
        validate_day_range(start, end, max_days=self._max_range_days)

        daily = [await self.build_day(project_id, day) for day in iter_days(start, end)]
        combined = combine_matrices(project_id, start, end, daily)
        return OrganizationMatrixRange(
            project_id=project_id,
            start_date=start,
            end_date=end,
            daily=daily,
            combined=combined,
        )
