"""Redis-backed result cache."""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from pydevlog.exceptions import CacheError

_logger = logging.getLogger(__name__)


class RedisResultCache:
    """Result cache on top of ``redis.asyncio``.

    Values are stored with ``SETEX`` so Redis expires them on its own.
    Every driver failure is raised as :class:`CacheError`; the report
    facade decides to absorb it.
    """

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisResultCache:
        return cls(Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise CacheError(f"redis GET {key} failed: {exc}") from exc
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as exc:
            raise CacheError(f"redis SETEX {key} failed: {exc}") from exc
        _logger.debug("Cached %s for %ds", key, ttl_seconds)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise CacheError(f"redis DEL {key} failed: {exc}") from exc

    async def close(self) -> None:
        await self._client.aclose()
