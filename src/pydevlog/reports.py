"""Cache-aside facade over rollups and organization matrices.

A read first tries the result cache; a miss computes, stores the JSON form
with a TTL matched to how volatile the report is, and returns.  The cache is
an optimisation only: any failure to read, decode or write an entry is logged
and the request falls back to computing.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime
from typing import TypeVar

from pydantic import BaseModel

from pydevlog.aggregation.matrix import MatrixBuilder
from pydevlog.aggregation.rollups import AggregationEngine
from pydevlog.aggregation.windows import parse_date, validate_day_range, validate_time_range
from pydevlog.backends.protocols import ResultCache
from pydevlog.config import DevLogConfig
from pydevlog.models import DeviceReport, ErrorReport, OrganizationMatrix, OrganizationMatrixRange, TimeRangeReport

_logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReportCache:
    """Cached access to every report the core produces.

    Parameters
    ----------
    engine : AggregationEngine
        Computes rollups on a miss.
    matrices : MatrixBuilder
        Computes organization matrices on a miss.
    cache : ResultCache
        Key/value store with per-key expiry.
    config : DevLogConfig
        Key prefix, TTLs and the time zone deciding what "today" is.
    clock : callable
        Returns the current aware datetime.
    """

    def __init__(
        self,
        engine: AggregationEngine,
        matrices: MatrixBuilder,
        cache: ResultCache,
        config: DevLogConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine
        self._matrices = matrices
        self._cache = cache
        self._config = config
        self._clock = clock

    # ------------------------------------------------------------------
    # Keys and TTLs
    # ------------------------------------------------------------------

    def _key(self, *parts: object) -> str:
        return ":".join([self._config.cache_prefix, *(str(part) for part in parts)])

    def device_key(self, device_id: str) -> str:
        return self._key("device", device_id)

    def time_range_key(self, start_ms: int, end_ms: int) -> str:
        return self._key("range", int(start_ms), int(end_ms))

    def error_key(self) -> str:
        return self._key("errors")

    def matrix_key(self, project_id: int, day: date) -> str:
        return self._key("matrix", project_id, day.isoformat())

    def matrix_range_key(self, project_id: int, start: date, end: date) -> str:
        return self._key("matrix-range", project_id, start.isoformat(), end.isoformat())

    def _matrix_ttl(self, last_day: date) -> int:
        today = self._clock().astimezone(self._config.tzinfo).date()
        if last_day < today:
            return self._config.historical_matrix_ttl
        return self._config.live_matrix_ttl

    # ------------------------------------------------------------------
    # Cache-aside core
    # ------------------------------------------------------------------

    async def _read(self, key: str, model: type[M]) -> M | None:
        try:
            raw = await self._cache.get(key)
        except Exception:
            _logger.warning("Cache read failed for %s; computing instead", key, exc_info=True)
            return None
        if raw is None:
            _logger.debug("Cache miss %s", key)
            return None
        try:
            value = model.model_validate_json(raw)
        except ValueError:
            _logger.warning("Discarding undecodable cache entry %s", key, exc_info=True)
            return None
        _logger.debug("Cache hit %s", key)
        return value

    async def _write(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        try:
            await self._cache.set(key, value.model_dump_json(), ttl_seconds)
        except Exception:
            _logger.warning("Cache write failed for %s", key, exc_info=True)

    async def _cached(
        self,
        key: str,
        model: type[M],
        ttl_seconds: int,
        compute: Callable[[], Awaitable[M]],
    ) -> M:
        hit = await self._read(key, model)
        if hit is not None:
            return hit
        value = await compute()
        await self._write(key, value, ttl_seconds)
        return value

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def device_report(self, device_id: str) -> DeviceReport:
        return await self._cached(
            self.device_key(device_id),
            DeviceReport,
            self._config.device_report_ttl,
            lambda: self._engine.by_device(device_id),
        )

    async def time_range_report(self, start_ms: int, end_ms: int) -> TimeRangeReport:
        validate_time_range(start_ms, end_ms)
        return await self._cached(
            self.time_range_key(start_ms, end_ms),
            TimeRangeReport,
            self._config.time_range_report_ttl,
            lambda: self._engine.by_time_range(start_ms, end_ms),
        )

    async def error_report(self) -> ErrorReport:
        return await self._cached(
            self.error_key(),
            ErrorReport,
            self._config.error_report_ttl,
            self._engine.errors,
        )

    async def organization_matrix(self, project_id: int, day: date | str) -> OrganizationMatrix:
        parsed = parse_date(day)
        return await self._cached(
            self.matrix_key(project_id, parsed),
            OrganizationMatrix,
            self._matrix_ttl(parsed),
            lambda: self._matrices.build_day(project_id, parsed),
        )

    async def organization_matrix_range(
        self,
        project_id: int,
        start_date: date | str,
        end_date: date | str,
    ) -> OrganizationMatrixRange:
        start = parse_date(start_date)
        end = parse_date(end_date)
        validate_day_range(start, end, max_days=self._config.max_range_days)
        return await self._cached(
            self.matrix_range_key(project_id, start, end),
            OrganizationMatrixRange,
            self._matrix_ttl(end),
            lambda: self._matrices.build_range(project_id, start, end),
        )

    async def invalidate_device(self, device_id: str) -> None:
        """Drop cached reports a new event from *device_id* makes stale."""
        for key in (self.device_key(device_id), self.error_key()):
            try:
                await self._cache.delete(key)
            except Exception:
                _logger.warning("Cache delete failed for %s", key, exc_info=True)
