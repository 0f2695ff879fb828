from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from pydevlog.aggregation.rollups import AggregationEngine
from pydevlog.backends.memory import MemoryEventStore, MemoryResultCache, StaticProjectDirectory
from pydevlog.backends.redis_cache import RedisResultCache
from pydevlog.backends.sqlite import SqliteEventStore
from pydevlog.exceptions import CacheError, StoreError
from pydevlog.models import Category, Event, EventFilter, Page, datetime_to_ms

BASE = datetime(2026, 1, 5, 8, 0, 0, 123000, tzinfo=UTC)


def _event(device_id: str, category: Category, key: str, minutes: int) -> Event:
    received = BASE + timedelta(minutes=minutes)
    return Event(
        project_id=1,
        device_id=device_id,
        session_id=f"s-{device_id}",
        client_timestamp=datetime_to_ms(received),
        category=category,
        key=key,
        value=str(minutes),
        server_received_at=received,
    )


_EVENTS = [
    _event("d1", Category.RECORD, "temp", 0),
    _event("d1", Category.ERROR, "jam", 1),
    _event("d2", Category.ERROR, "jam", 2),
    _event("d2", Category.WARNING, "volt", 3),
]


# ------------------------------------------------------------------
# Event stores
# ------------------------------------------------------------------


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request: pytest.FixtureRequest, tmp_path: Path) -> MemoryEventStore | SqliteEventStore:
    backend: MemoryEventStore | SqliteEventStore
    backend = MemoryEventStore() if request.param == "memory" else SqliteEventStore(tmp_path / "events.sqlite3")
    for event in _EVENTS:
        await backend.append(event)
    return backend


@pytest.mark.asyncio
async def test_query_newest_first_with_paging(store: MemoryEventStore | SqliteEventStore) -> None:
    everything = await store.query(EventFilter())
    assert [e.value for e in everything] == ["3", "2", "1", "0"]
    assert everything[-1].server_received_at == BASE
    assert everything[-1].sequence_id == 1

    page = await store.query(EventFilter(), Page(page=2, page_size=3))
    assert [e.value for e in page] == ["0"]


@pytest.mark.asyncio
async def test_get_by_sequence_id(store: MemoryEventStore | SqliteEventStore) -> None:
    event = await store.get(3)
    assert event is not None
    assert (event.device_id, event.key, event.server_received_at) == ("d2", "jam", BASE + timedelta(minutes=2))
    assert await store.get(42) is None


@pytest.mark.asyncio
async def test_count_and_filters(store: MemoryEventStore | SqliteEventStore) -> None:
    assert await store.count(EventFilter(device_id="d2")) == 2
    assert await store.count(EventFilter(category=Category.ERROR)) == 2
    assert await store.count(EventFilter(start=BASE + timedelta(minutes=1), end=BASE + timedelta(minutes=2))) == 2
    assert await store.count(EventFilter(project_id=9)) == 0


@pytest.mark.asyncio
async def test_group_count(store: MemoryEventStore | SqliteEventStore) -> None:
    groups = await store.group_count(EventFilter(category=Category.ERROR), ["device_id", "key"])
    by_group = {(g.group["device_id"], g.group["key"]): g for g in groups}

    assert set(by_group) == {("d1", "jam"), ("d2", "jam")}
    assert by_group[("d2", "jam")].count == 1
    assert by_group[("d2", "jam")].max_timestamp == BASE + timedelta(minutes=2)


@pytest.mark.asyncio
async def test_group_count_rejects_unknown_field(store: MemoryEventStore | SqliteEventStore) -> None:
    with pytest.raises(StoreError):
        await store.group_count(EventFilter(), ["value"])


@pytest.mark.asyncio
async def test_rollups_agree_across_backends(tmp_path: Path) -> None:
    memory = MemoryEventStore(_EVENTS)
    sqlite = SqliteEventStore(tmp_path / "agree.sqlite3")
    for event in _EVENTS:
        await sqlite.append(event)

    assert await AggregationEngine(memory).errors() == await AggregationEngine(sqlite).errors()
    assert await AggregationEngine(memory).by_device("d2") == await AggregationEngine(sqlite).by_device("d2")


@pytest.mark.asyncio
async def test_sqlite_failure_is_store_error(tmp_path: Path) -> None:
    sqlite = SqliteEventStore(tmp_path / "closed.sqlite3")
    sqlite.close()
    with pytest.raises(StoreError) as exc_info:
        await sqlite.count(EventFilter())
    assert exc_info.value.operation == "count"


def test_sqlite_unopenable_path_is_store_error(tmp_path: Path) -> None:
    with pytest.raises(StoreError):
        SqliteEventStore(tmp_path / "missing-dir" / "events.sqlite3")


# ------------------------------------------------------------------
# Caches and lookups
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_memory_cache_expires() -> None:
    now = [100.0]
    cache = MemoryResultCache(clock=lambda: now[0])
    await cache.set("k", "v", 10)

    assert await cache.get("k") == "v"
    now[0] = 110.0
    assert await cache.get("k") is None
    assert len(cache) == 0


class _FakeRedis:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.data: dict[str, tuple[int, str]] = {}

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def get(self, key: str) -> str | None:
        self._check()
        entry = self.data.get(key)
        return entry[1] if entry else None

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self._check()
        self.data[key] = (ttl, value)

    async def delete(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)


@pytest.mark.asyncio
async def test_redis_cache_uses_setex() -> None:
    client = _FakeRedis()
    cache = RedisResultCache(client)  # type: ignore[arg-type]

    await cache.set("devlog:errors", "{}", 60)
    assert client.data == {"devlog:errors": (60, "{}")}
    assert await cache.get("devlog:errors") == "{}"
    await cache.delete("devlog:errors")
    assert await cache.get("devlog:errors") is None


@pytest.mark.asyncio
async def test_redis_errors_become_cache_errors() -> None:
    cache = RedisResultCache(_FakeRedis(fail=True))  # type: ignore[arg-type]
    with pytest.raises(CacheError):
        await cache.get("k")
    with pytest.raises(CacheError):
        await cache.set("k", "v", 1)


@pytest.mark.asyncio
async def test_static_directory_lookups() -> None:
    directory = StaticProjectDirectory({1: "secret"})
    assert await directory.find_secret(1) == "secret"
    assert await directory.find_secret(2) is None
    assert await directory.find_column_labels(1) is None
