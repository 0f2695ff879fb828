from __future__ import annotations

from datetime import UTC, datetime

from pydevlog._redact import REDACTED, clip, submission_log_fields
from pydevlog.models import Category, Event


def _event(value: str) -> Event:
    return Event(
        project_id=42,
        device_id="dev-1",
        session_id="sess-1",
        client_timestamp=1_700_000_000_000,
        category=Category.ERROR,
        key="overheat",
        value=value,
        server_received_at=datetime(2023, 11, 14, tzinfo=UTC),
    )


def test_submission_log_fields_mask_signature() -> None:
    fields = submission_log_fields(_event("91"), 1_700_000_000_000)

    assert fields == {
        "projectId": 42,
        "deviceId": "dev-1",
        "sessionId": "sess-1",
        "timestamp": 1_700_000_000_000,
        "category": "error",
        "key": "overheat",
        "value": "91",
        "signature": REDACTED,
    }


def test_submission_log_fields_clip_long_values() -> None:
    fields = submission_log_fields(_event("x" * 600), 1, max_value=10)
    assert fields["value"] == "x" * 10 + "…<+590 chars>"


def test_clip_keeps_short_values() -> None:
    assert clip("abc", 3) == "abc"
