"""Data models for events and derived reports."""

from pydevlog.models._base import Category, DevLogBaseModel, UtcDatetime, datetime_to_ms, ms_to_datetime
from pydevlog.models.event import (
    Event,
    EventFilter,
    GroupCount,
    Page,
    PageInfo,
    PaginatedEvents,
    SigningPrincipal,
    Submission,
)
from pydevlog.models.matrix import OrganizationMatrix, OrganizationMatrixRange, RowMetadata
from pydevlog.models.reports import (
    CategoryCounts,
    DeviceReport,
    ErrorEntry,
    ErrorReport,
    SessionDetail,
    SessionSummary,
    TimeRangeReport,
)

__all__ = [
    "Category",
    "CategoryCounts",
    "DevLogBaseModel",
    "DeviceReport",
    "ErrorEntry",
    "ErrorReport",
    "Event",
    "EventFilter",
    "GroupCount",
    "OrganizationMatrix",
    "OrganizationMatrixRange",
    "Page",
    "PageInfo",
    "PaginatedEvents",
    "RowMetadata",
    "SessionDetail",
    "SessionSummary",
    "SigningPrincipal",
    "Submission",
    "TimeRangeReport",
    "UtcDatetime",
    "datetime_to_ms",
    "ms_to_datetime",
]
