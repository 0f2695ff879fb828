"""Grouped count rollups over the event store.

Every function here is a read-only projection of store state at call time.
Caching is layered on top by :class:`pydevlog.reports.ReportCache`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from pydevlog.aggregation.windows import validate_time_range
from pydevlog.backends.protocols import EventStore
from pydevlog.models import (
    Category,
    DeviceReport,
    ErrorEntry,
    ErrorReport,
    Event,
    EventFilter,
    GroupCount,
    SessionDetail,
    SessionSummary,
    TimeRangeReport,
)

_logger = logging.getLogger(__name__)

_COUNT_FIELDS: dict[Category, str] = {
    Category.RECORD: "record_count",
    Category.WARNING: "warning_count",
    Category.ERROR: "error_count",
}


def _category_counts(groups: Iterable[GroupCount]) -> dict[str, int]:
    """Fold ``group_count(..., ["category"])`` rows into report counters."""
    counts = {name: 0 for name in _COUNT_FIELDS.values()}
    for group in groups:
        category = Category(group.group["category"])
        counts[_COUNT_FIELDS[category]] += group.count
    counts["total_count"] = sum(counts.values())
    return counts


def _time_bounds(groups: Iterable[GroupCount]) -> tuple[datetime | None, datetime | None]:
    firsts = [g.min_timestamp for g in groups if g.min_timestamp is not None]
    lasts = [g.max_timestamp for g in groups if g.max_timestamp is not None]
    return (min(firsts) if firsts else None, max(lasts) if lasts else None)


def _summarize_session(session_id: str, events: list[Event]) -> dict[str, object]:
    counts = {name: 0 for name in _COUNT_FIELDS.values()}
    for event in events:
        counts[_COUNT_FIELDS[event.category]] += 1
    times = [event.server_received_at for event in events]
    # Store order is newest first; the oldest event names the device.
    return {
        "session_id": session_id,
        "project_id": events[-1].project_id,
        "device_id": events[-1].device_id,
        "total_count": len(events),
        "first_time": min(times),
        "last_time": max(times),
        **counts,
    }


class AggregationEngine:
    """Device, time-range, error and session rollups."""

    def __init__(self, store: EventStore) -> None:
        self._store = store

    async def by_device(self, device_id: str) -> DeviceReport:
        """Totals for one device; a device with no events yields a zero report."""
        groups = await self._store.group_count(EventFilter(device_id=device_id), ["category"])
        first, last = _time_bounds(groups)
        report = DeviceReport(device_id=device_id, first_time=first, last_time=last, **_category_counts(groups))
        _logger.debug("Device rollup device=%s total=%d", device_id, report.total_count)
        return report

    async def by_time_range(self, start_ms: int, end_ms: int) -> TimeRangeReport:
        """Totals over the inclusive range plus the distinct device count.

        Raises
        ------
        RangeError
            ``start_ms >= end_ms``; checked before the store is queried.
        """
        start, end = validate_time_range(start_ms, end_ms)
        event_filter = EventFilter(start=start, end=end)
        groups = await self._store.group_count(event_filter, ["category"])
        devices = await self._store.group_count(event_filter, ["device_id"])
        report = TimeRangeReport(
            start_time=start,
            end_time=end,
            device_count=len(devices),
            **_category_counts(groups),
        )
        _logger.debug(
            "Time range rollup %s..%s total=%d devices=%d",
            start.isoformat(),
            end.isoformat(),
            report.total_count,
            report.device_count,
        )
        return report

    async def errors(self) -> ErrorReport:
        """Error frequency per ``(device_id, key)``.

        Ordered by count descending; equal counts fall back to
        ``(device_id, key)`` ascending so the order is stable.
        """
        groups = await self._store.group_count(EventFilter(category=Category.ERROR), ["device_id", "key"])
        ordered = sorted(groups, key=lambda g: (-g.count, g.group["device_id"], g.group["key"]))
        entries = [
            ErrorEntry(
                device_id=g.group["device_id"],
                key=g.group["key"],
                count=g.count,
                last_occurrence=g.max_timestamp,
            )
            for g in ordered
        ]
        report = ErrorReport(errors=entries, total_errors=sum(e.count for e in entries))
        _logger.debug("Error rollup groups=%d total=%d", len(entries), report.total_errors)
        return report

    async def sessions_by_project(self, project_id: int) -> list[SessionSummary]:
        """Every session of a project, most recently active first."""
        events = await self._store.query(EventFilter(project_id=project_id))
        by_session: dict[str, list[Event]] = {}
        for event in events:
            by_session.setdefault(event.session_id, []).append(event)

        summaries = [SessionSummary(**_summarize_session(sid, members)) for sid, members in by_session.items()]
        summaries.sort(key=lambda s: (s.last_time, s.session_id), reverse=True)
        return summaries

    async def session_detail(self, session_id: str) -> SessionDetail | None:
        events = await self._store.query(EventFilter(session_id=session_id))
        if not events:
            return None
        return SessionDetail(events=events, **_summarize_session(session_id, events))
