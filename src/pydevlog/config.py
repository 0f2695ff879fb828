"""Runtime configuration for pydevlog."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydevlog._constants import (
    DEFAULT_CACHE_PREFIX,
    DEFAULT_MAX_RANGE_DAYS,
    MAX_TIMESTAMP_SKEW_MS,
)
from pydevlog.exceptions import DevLogConfigError


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError as exc:
        raise DevLogConfigError(f"{key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class DevLogConfig:
    """Core configuration.

    Parameters
    ----------
    max_skew_ms : int
        Largest accepted distance between the server clock and a submission
        timestamp, in milliseconds.  Defaults to five minutes.
    time_zone : str
        IANA time zone used to cut calendar days for matrix reports.
    max_range_days : int
        Widest day range accepted by the multi-day matrix report.
    cache_prefix : str
        Namespace prepended to every result cache key.
    device_report_ttl : int
        Seconds a cached device report stays valid.
    error_report_ttl : int
        Seconds a cached error report stays valid.
    time_range_report_ttl : int
        Seconds a cached time-range report stays valid.
    historical_matrix_ttl : int
        Seconds a matrix covering only past days stays valid.
    live_matrix_ttl : int
        Seconds a matrix that includes the current day stays valid.
    redis_url : str or None
        Connection URL for :class:`pydevlog.backends.RedisResultCache`.
    sqlite_path : str
        Database path for :class:`pydevlog.backends.SqliteEventStore`.
    """

    max_skew_ms: int = MAX_TIMESTAMP_SKEW_MS
    time_zone: str = "UTC"
    max_range_days: int = DEFAULT_MAX_RANGE_DAYS
    cache_prefix: str = DEFAULT_CACHE_PREFIX
    device_report_ttl: int = 60
    error_report_ttl: int = 60
    time_range_report_ttl: int = 300
    historical_matrix_ttl: int = 24 * 3600
    live_matrix_ttl: int = 60
    redis_url: str | None = None
    sqlite_path: str = "devlog.sqlite3"

    def __post_init__(self) -> None:
        if self.max_skew_ms <= 0:
            raise DevLogConfigError("max_skew_ms must be positive")
        if self.max_range_days < 1:
            raise DevLogConfigError("max_range_days must be at least 1")
        for name in (
            "device_report_ttl",
            "error_report_ttl",
            "time_range_report_ttl",
            "historical_matrix_ttl",
            "live_matrix_ttl",
        ):
            if getattr(self, name) <= 0:
                raise DevLogConfigError(f"{name} must be positive")
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise DevLogConfigError(f"unknown time zone {self.time_zone!r}") from exc

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    @classmethod
    def from_env(cls, **overrides: Any) -> DevLogConfig:
        """Create configuration from ``DEVLOG_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "DEVLOG_TIME_ZONE": "time_zone",
            "DEVLOG_CACHE_PREFIX": "cache_prefix",
            "DEVLOG_REDIS_URL": "redis_url",
            "DEVLOG_SQLITE_PATH": "sqlite_path",
        }
        _ENV_INT_MAP = {
            "DEVLOG_MAX_SKEW_MS": "max_skew_ms",
            "DEVLOG_MAX_RANGE_DAYS": "max_range_days",
            "DEVLOG_DEVICE_REPORT_TTL": "device_report_ttl",
            "DEVLOG_ERROR_REPORT_TTL": "error_report_ttl",
            "DEVLOG_TIME_RANGE_REPORT_TTL": "time_range_report_ttl",
            "DEVLOG_HISTORICAL_MATRIX_TTL": "historical_matrix_ttl",
            "DEVLOG_LIVE_MATRIX_TTL": "live_matrix_ttl",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val
        for env_key, field_name in _ENV_INT_MAP.items():
            if field_name in overrides:
                continue
            parsed = _env_int(env, env_key)
            if parsed is not None:
                config_kwargs[field_name] = parsed

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
