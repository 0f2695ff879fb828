"""Base model, category enum and time helpers shared by all models.

Every model inherits from :class:`DevLogBaseModel` which provides:

* ``frozen=True``: reports and events are immutable projections.
* ``alias_generator=to_camel`` so the camelCase wire names used by devices
  and the HTTP layer map onto snake_case fields, while
  ``populate_by_name`` keeps snake_case construction working.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


class Category(StrEnum):
    """Kind of an observation. Nothing else is ever stored."""

    RECORD = "record"
    WARNING = "warning"
    ERROR = "error"


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)


def ms_to_datetime(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=value)


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - _EPOCH) // _ONE_MS


def _coerce_utc(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return ms_to_datetime(int(value))
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, BeforeValidator(_coerce_utc)]
"""Datetime that accepts epoch milliseconds and always ends up tz-aware."""


class DevLogBaseModel(BaseModel):
    """Base for pydevlog models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )
