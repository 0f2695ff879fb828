"""pydevlog - signed device log ingestion and report aggregation."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pydevlog")
except PackageNotFoundError:
    __version__ = "0+local"
from pydevlog.config import DevLogConfig
from pydevlog.exceptions import (
    CacheError,
    DevLogConfigError,
    DevLogError,
    ProjectNotFoundError,
    RangeError,
    SignatureError,
    StoreError,
    SubmissionRejectedError,
    TimestampError,
)
from pydevlog.models import (
    Category,
    DeviceReport,
    ErrorEntry,
    ErrorReport,
    Event,
    EventFilter,
    OrganizationMatrix,
    OrganizationMatrixRange,
    Page,
    PaginatedEvents,
    RowMetadata,
    SessionDetail,
    SessionSummary,
    SigningPrincipal,
    Submission,
    TimeRangeReport,
)
from pydevlog.reports import ReportCache
from pydevlog.service import DevLogService
from pydevlog.verifier import SignatureVerifier, sign_event

__all__ = [
    "__version__",
    "CacheError",
    "Category",
    "DevLogConfig",
    "DevLogConfigError",
    "DevLogError",
    "DevLogService",
    "DeviceReport",
    "ErrorEntry",
    "ErrorReport",
    "Event",
    "EventFilter",
    "OrganizationMatrix",
    "OrganizationMatrixRange",
    "Page",
    "PaginatedEvents",
    "ProjectNotFoundError",
    "RangeError",
    "ReportCache",
    "RowMetadata",
    "SessionDetail",
    "SessionSummary",
    "SignatureError",
    "SignatureVerifier",
    "SigningPrincipal",
    "StoreError",
    "Submission",
    "SubmissionRejectedError",
    "TimeRangeReport",
    "TimestampError",
    "sign_event",
]
