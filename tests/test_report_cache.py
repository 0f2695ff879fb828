from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, date, datetime

import pytest

from pydevlog.aggregation.matrix import MatrixBuilder
from pydevlog.aggregation.rollups import AggregationEngine
from pydevlog.backends.memory import MemoryEventStore, MemoryResultCache
from pydevlog.config import DevLogConfig
from pydevlog.exceptions import CacheError, RangeError
from pydevlog.models import Category, Event, EventFilter, GroupCount, Page, datetime_to_ms
from pydevlog.reports import ReportCache

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)


class _CountingStore(MemoryEventStore):
    def __init__(self, events: Sequence[Event] = ()) -> None:
        super().__init__(events)
        self.calls = 0

    async def group_count(self, event_filter: EventFilter, group_by: Sequence[str]) -> list[GroupCount]:
        self.calls += 1
        return await super().group_count(event_filter, group_by)

    async def query(self, event_filter: EventFilter, page: Page | None = None) -> list[Event]:
        self.calls += 1
        return await super().query(event_filter, page)


class _BrokenCache:
    async def get(self, key: str) -> str | None:
        raise CacheError("connection refused")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise CacheError("connection refused")

    async def delete(self, key: str) -> None:
        raise CacheError("connection refused")


class _RecordingCache(MemoryResultCache):
    def __init__(self) -> None:
        super().__init__()
        self.ttls: dict[str, int] = {}

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.ttls[key] = ttl_seconds
        await super().set(key, value, ttl_seconds)


def _event(device_id: str = "d1", category: Category = Category.RECORD, received: datetime = NOW) -> Event:
    return Event(
        project_id=1,
        device_id=device_id,
        session_id="s1",
        client_timestamp=datetime_to_ms(received),
        category=category,
        key="k",
        value="v",
        server_received_at=received,
    )


def _facade(store: MemoryEventStore, cache: object, config: DevLogConfig | None = None) -> ReportCache:
    config = config or DevLogConfig()
    return ReportCache(
        AggregationEngine(store),
        MatrixBuilder(store, tz=config.tzinfo, max_range_days=config.max_range_days),
        cache,  # type: ignore[arg-type]
        config,
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_second_read_is_served_from_cache() -> None:
    store = _CountingStore([_event()])
    reports = _facade(store, MemoryResultCache())

    first = await reports.device_report("d1")
    second = await reports.device_report("d1")

    assert first == second
    assert store.calls == 1


@pytest.mark.asyncio
async def test_broken_cache_degrades_to_compute() -> None:
    store = _CountingStore([_event(), _event(category=Category.ERROR)])
    reports = _facade(store, _BrokenCache())

    report = await reports.device_report("d1")
    await reports.device_report("d1")
    errors = await reports.error_report()
    await reports.invalidate_device("d1")

    assert report.total_count == 2
    assert errors.total_errors == 1
    assert store.calls == 3


@pytest.mark.asyncio
async def test_undecodable_entry_is_recomputed() -> None:
    cache = MemoryResultCache()
    reports = _facade(_CountingStore([_event()]), cache)
    await cache.set(reports.device_key("d1"), "{not json", 60)

    report = await reports.device_report("d1")

    assert report.total_count == 1
    assert await cache.get(reports.device_key("d1")) == report.model_dump_json()


@pytest.mark.asyncio
async def test_time_range_key_and_validation() -> None:
    store = _CountingStore([_event()])
    cache = _RecordingCache()
    reports = _facade(store, cache)

    with pytest.raises(RangeError):
        await reports.time_range_report(5, 5)
    assert store.calls == 0

    start, end = datetime_to_ms(NOW) - 1000, datetime_to_ms(NOW) + 1000
    report = await reports.time_range_report(start, end)
    assert report.total_count == 1
    assert cache.ttls == {f"devlog:range:{start}:{end}": 300}


@pytest.mark.asyncio
async def test_matrix_ttl_depends_on_date() -> None:
    cache = _RecordingCache()
    reports = _facade(_CountingStore([_event()]), cache, DevLogConfig(cache_prefix="t"))

    await reports.organization_matrix(1, "2026-01-09")
    await reports.organization_matrix(1, date(2026, 1, 10))
    await reports.organization_matrix_range(1, "2026-01-01", "2026-01-03")

    assert cache.ttls == {
        "t:matrix:1:2026-01-09": 86400,
        "t:matrix:1:2026-01-10": 60,
        "t:matrix-range:1:2026-01-01:2026-01-03": 86400,
    }


@pytest.mark.asyncio
async def test_matrix_round_trips_through_cache() -> None:
    store = _CountingStore([_event(), _event(device_id="d2", received=NOW.replace(hour=13))])
    reports = _facade(store, MemoryResultCache())

    fresh = await reports.organization_matrix_range(1, "2026-01-09", "2026-01-10")
    cached = await reports.organization_matrix_range(1, "2026-01-09", "2026-01-10")

    assert cached == fresh
    assert cached.combined.row_metadata["s1"].first_timestamp == NOW
    assert store.calls == 2


@pytest.mark.asyncio
async def test_invalidate_device_drops_device_and_error_entries() -> None:
    store = _CountingStore([_event()])
    cache = MemoryResultCache()
    reports = _facade(store, cache)

    await reports.device_report("d1")
    await reports.error_report()
    assert len(cache) == 2

    await reports.invalidate_device("d1")
    assert len(cache) == 0
