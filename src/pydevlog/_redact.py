"""Log-safe view of a submitted event.

The signature never reaches a log record and the device value is clipped.
"""

from __future__ import annotations

from pydevlog.models import Event

REDACTED = "<redacted>"


def clip(value: str, limit: int) -> str:
    """Cut *value* to *limit* characters, noting how much was dropped."""
    if len(value) <= limit:
        return value
    return f"{value[:limit]}…<+{len(value) - limit} chars>"


def submission_log_fields(event: Event, timestamp: int, *, max_value: int = 64) -> dict[str, object]:
    """Fields of a submission worth logging, with the signature masked."""
    return {
        "projectId": event.project_id,
        "deviceId": event.device_id,
        "sessionId": event.session_id,
        "timestamp": timestamp,
        "category": str(event.category),
        "key": event.key,
        "value": clip(event.value, max_value),
        "signature": REDACTED,
    }
