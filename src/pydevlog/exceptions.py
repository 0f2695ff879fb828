"""Custom exception hierarchy for pydevlog."""

from __future__ import annotations

#: Message handed to external callers for every rejected submission.
GENERIC_REJECTION_MESSAGE = "submission authentication failed"


class DevLogError(Exception):
    """Base exception for all pydevlog errors."""


class DevLogConfigError(DevLogError):
    """Invalid or missing configuration."""


class SubmissionRejectedError(DevLogError):
    """A submitted event failed authentication.

    The concrete subclass and ``reason`` are meant for logs only.  Callers
    that answer a device should use :attr:`public_message`, which does not
    reveal whether the project, the timestamp or the signature was wrong.
    """

    reason: str = "rejected"

    def __init__(self, message: str, *, project_id: int | None = None) -> None:
        self.project_id = project_id
        super().__init__(message)

    @property
    def public_message(self) -> str:
        return GENERIC_REJECTION_MESSAGE


class TimestampError(SubmissionRejectedError):
    """Submission timestamp is outside the freshness window."""

    reason = "timestamp"

    def __init__(
        self,
        message: str,
        *,
        project_id: int | None = None,
        client_timestamp: int | None = None,
        server_time: int | None = None,
    ) -> None:
        self.client_timestamp = client_timestamp
        self.server_time = server_time
        super().__init__(message, project_id=project_id)


class ProjectNotFoundError(SubmissionRejectedError):
    """No signing secret is registered for the project."""

    reason = "project_not_found"


class SignatureError(SubmissionRejectedError):
    """HMAC signature did not match the canonical signing string."""

    reason = "signature"


class RangeError(DevLogError, ValueError):
    """Invalid time or date range (ordering, width or format)."""


class StoreError(DevLogError):
    """Event store failure. Always surfaced, never retried here."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class CacheError(DevLogError):
    """Result cache failure.

    :class:`pydevlog.reports.ReportCache` absorbs these and computes the
    report instead.
    """
