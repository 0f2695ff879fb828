"""Structural interfaces of the collaborators the core consumes.

Any object with matching async methods satisfies them; the shipped backends
are concrete. Implementations translate driver failures into
:class:`pydevlog.exceptions.StoreError` or
:class:`pydevlog.exceptions.CacheError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from pydevlog.exceptions import StoreError
from pydevlog.models import Event, EventFilter, GroupCount, Page

#: Fields an event store must be able to group by.
GROUPABLE_FIELDS: frozenset[str] = frozenset({"project_id", "device_id", "session_id", "category", "key"})


class SecretLookup(Protocol):
    async def find_secret(self, project_id: int) -> str | None: ...


class ColumnLabelLookup(Protocol):
    async def find_column_labels(self, project_id: int) -> Mapping[str, str] | None: ...


class EventStore(Protocol):
    """Append-only event records.

    ``query`` returns events newest first (by ``server_received_at``, then
    ``sequence_id``).  Without a page every matching event is returned.
    """

    async def append(self, event: Event) -> Event: ...

    async def get(self, sequence_id: int) -> Event | None: ...

    async def query(self, event_filter: EventFilter, page: Page | None = None) -> list[Event]: ...

    async def count(self, event_filter: EventFilter) -> int: ...

    async def group_count(self, event_filter: EventFilter, group_by: Sequence[str]) -> list[GroupCount]: ...


class ResultCache(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


def check_group_fields(group_by: Sequence[str]) -> None:
    """Raise ``StoreError`` unless *group_by* names only groupable fields."""
    unknown = [name for name in group_by if name not in GROUPABLE_FIELDS]
    if unknown or not group_by:
        raise StoreError(f"cannot group by {list(group_by)!r}", operation="group_count")
