"""In-process backends.

Used by tests and by single-process deployments that do not need durable
storage.  They follow exactly the same contracts as the SQLite and Redis
backends.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from pydevlog.backends.protocols import check_group_fields
from pydevlog.models import Event, EventFilter, GroupCount, Page


def _group_value(event: Event, name: str) -> str:
    return str(getattr(event, name))


class MemoryEventStore:
    """List-backed event store that assigns increasing sequence ids."""

    def __init__(self, events: Sequence[Event] = ()) -> None:
        self._events: list[Event] = []
        self._sequence = itertools.count(1)
        for event in events:
            self._append_sync(event)

    def _append_sync(self, event: Event) -> Event:
        stored = event.model_copy(update={"sequence_id": next(self._sequence)})
        self._events.append(stored)
        return stored

    async def append(self, event: Event) -> Event:
        return self._append_sync(event)

    async def get(self, sequence_id: int) -> Event | None:
        return next((event for event in self._events if event.sequence_id == sequence_id), None)

    def _matching(self, event_filter: EventFilter) -> list[Event]:
        return [event for event in self._events if event_filter.matches(event)]

    async def query(self, event_filter: EventFilter, page: Page | None = None) -> list[Event]:
        matches = sorted(
            self._matching(event_filter),
            key=lambda e: (e.server_received_at, e.sequence_id or 0),
            reverse=True,
        )
        if page is None:
            return matches
        return matches[page.offset : page.offset + page.page_size]

    async def count(self, event_filter: EventFilter) -> int:
        return len(self._matching(event_filter))

    async def group_count(self, event_filter: EventFilter, group_by: Sequence[str]) -> list[GroupCount]:
        check_group_fields(group_by)
        groups: dict[tuple[str, ...], list[Event]] = {}
        for event in self._matching(event_filter):
            groups.setdefault(tuple(_group_value(event, name) for name in group_by), []).append(event)

        result: list[GroupCount] = []
        for values, members in groups.items():
            times = [event.server_received_at for event in members]
            result.append(
                GroupCount(
                    group=dict(zip(group_by, values, strict=True)),
                    count=len(members),
                    min_timestamp=min(times),
                    max_timestamp=max(times),
                )
            )
        return result


@dataclass
class ProjectEntry:
    signing_secret: str
    column_labels: dict[str, str] = field(default_factory=dict)


class StaticProjectDirectory:
    """Fixed project table serving both secret and column label lookups."""

    def __init__(self, projects: Mapping[int, ProjectEntry | str] | None = None) -> None:
        self._projects: dict[int, ProjectEntry] = {}
        for project_id, entry in (projects or {}).items():
            self.register(project_id, entry)

    def register(self, project_id: int, entry: ProjectEntry | str) -> None:
        if isinstance(entry, str):
            entry = ProjectEntry(signing_secret=entry)
        self._projects[project_id] = entry

    async def find_secret(self, project_id: int) -> str | None:
        entry = self._projects.get(project_id)
        return entry.signing_secret if entry is not None else None

    async def find_column_labels(self, project_id: int) -> Mapping[str, str] | None:
        entry = self._projects.get(project_id)
        if entry is None or not entry.column_labels:
            return None
        return dict(entry.column_labels)


class MemoryResultCache:
    """Dict cache with per-key expiry measured on a monotonic clock."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
