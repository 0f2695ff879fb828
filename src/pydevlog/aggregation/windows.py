"""Calendar date parsing and day windows."""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, tzinfo

from pydevlog.exceptions import RangeError
from pydevlog.models import ms_to_datetime

_ISO_DAY = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_date(value: date | str) -> date:
    """Accept a ``date`` or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or _ISO_DAY.fullmatch(value) is None:
        raise RangeError(f"invalid calendar date {value!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise RangeError(f"invalid calendar date {value!r}, expected YYYY-MM-DD") from exc


def day_window(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """Inclusive ``[00:00:00.000, 23:59:59.999]`` of *day* in *tz*."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz) - timedelta(milliseconds=1)
    return start, end


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def validate_day_range(start: date, end: date, *, max_days: int) -> int:
    """Return the number of days in ``[start, end]`` or raise ``RangeError``."""
    if start > end:
        raise RangeError(f"start date {start} is after end date {end}")
    days = (end - start).days + 1
    if days > max_days:
        raise RangeError(f"date range of {days} days exceeds the limit of {max_days}")
    return days


def validate_time_range(start_ms: int, end_ms: int) -> tuple[datetime, datetime]:
    """Convert an epoch-ms range, rejecting ``start_ms >= end_ms``.

    Equal instants are a degenerate range and rejected as well.
    """
    if start_ms >= end_ms:
        raise RangeError(f"start {start_ms} must be strictly before end {end_ms}")
    return ms_to_datetime(start_ms), ms_to_datetime(end_ms)
