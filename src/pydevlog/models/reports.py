"""Rollup report models.

Reports are recomputable projections of the event store; they carry no
identity of their own and are only ever cached, never persisted.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, model_validator

from pydevlog.models._base import Category, DevLogBaseModel
from pydevlog.models.event import Event


class CategoryCounts(DevLogBaseModel):
    """Per-category counters with a derived total."""

    total_count: int = Field(default=0, ge=0)
    record_count: int = Field(default=0, ge=0)
    warning_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _total_matches_categories(self) -> CategoryCounts:
        expected = self.record_count + self.warning_count + self.error_count
        if self.total_count != expected:
            raise ValueError(f"total_count {self.total_count} != sum of categories {expected}")
        return self

    @property
    def counts_by_category(self) -> dict[Category, int]:
        return {
            Category.RECORD: self.record_count,
            Category.WARNING: self.warning_count,
            Category.ERROR: self.error_count,
        }


class DeviceReport(CategoryCounts):
    """Totals for one device.  ``first_time``/``last_time`` are ``None`` when empty."""

    device_id: str
    first_time: datetime | None = None
    last_time: datetime | None = None


class TimeRangeReport(CategoryCounts):
    """Totals over an inclusive ``[start_time, end_time]`` window."""

    start_time: datetime
    end_time: datetime
    device_count: int = Field(default=0, ge=0)


class ErrorEntry(DevLogBaseModel):
    device_id: str
    key: str
    count: int = Field(ge=1)
    last_occurrence: datetime | None = None


class ErrorReport(DevLogBaseModel):
    """Error frequency per ``(device_id, key)``, most frequent first."""

    errors: list[ErrorEntry] = Field(default_factory=list)
    total_errors: int = Field(default=0, ge=0)


class SessionSummary(CategoryCounts):
    session_id: str
    project_id: int
    device_id: str | None = None
    first_time: datetime | None = None
    last_time: datetime | None = None


class SessionDetail(SessionSummary):
    """Session summary plus its events, newest first."""

    events: list[Event] = Field(default_factory=list)
