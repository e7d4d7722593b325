"""Distributed cache abstraction with in-process and Redis backends.

The distributed cache stores raw bytes and is meant for data shared between
several instances of the application. ``InMemoryDistributedCache`` satisfies
the same contract inside a single process, which is the default until a shared
store is configured; ``RedisDistributedCache`` is the shared implementation.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

import redis.asyncio as aioredis
from loguru import logger

from src.infrastructure.cache.memory import MemoryCache

NO_EXPIRATION = -1

# Hash fields used for every Redis entry
DATA_FIELD = "data"
ABSOLUTE_EXPIRATION_FIELD = "absexp"
SLIDING_EXPIRATION_FIELD = "sldexp"


@runtime_checkable
class DistributedCache(Protocol):
    """Byte-oriented cache shared between application instances."""

    async def get(self, key: str) -> bytes | None:
        """Return the value for ``key`` and refresh its sliding expiration."""
        ...

    async def set(
        self,
        key: str,
        value: bytes,
        *,
        ttl_seconds: int | None = None,
        sliding_seconds: int | None = None,
    ) -> None:
        """Store ``value`` under ``key``."""
        ...

    async def refresh(self, key: str) -> None:
        """Reset the sliding expiration of ``key`` without reading it."""
        ...

    async def remove(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    async def close(self) -> None:
        """Release any underlying connections."""
        ...


class InMemoryDistributedCache:
    """DistributedCache backed by a process-local MemoryCache.

    Args:
        default_ttl_seconds: Absolute expiration used when none is given.
    """

    def __init__(self, default_ttl_seconds: int | None = None) -> None:
        self._cache = MemoryCache(default_ttl_seconds=default_ttl_seconds)

    async def get(self, key: str) -> bytes | None:
        value: bytes | None = self._cache.get(key)
        return value

    async def set(
        self,
        key: str,
        value: bytes,
        *,
        ttl_seconds: int | None = None,
        sliding_seconds: int | None = None,
    ) -> None:
        self._cache.set(
            key,
            bytes(value),
            ttl_seconds=ttl_seconds,
            sliding_seconds=sliding_seconds,
        )

    async def refresh(self, key: str) -> None:
        self._cache.touch(key)

    async def remove(self, key: str) -> None:
        self._cache.remove(key)

    async def close(self) -> None:
        self._cache.clear()


class RedisDistributedCache:
    """DistributedCache stored in Redis hashes.

    Each entry is a hash holding the payload, the absolute expiration as a
    Unix timestamp and the sliding period, so that sliding expiration can be
    re-applied on every read without exceeding the absolute deadline.

    Args:
        client: Async Redis client.
        key_prefix: Prefix applied to every key.
        default_ttl_seconds: Absolute expiration used when none is given.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        key_prefix: str = "",
        default_ttl_seconds: int | None = None,
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix
        self._default_ttl_seconds = default_ttl_seconds

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "",
        default_ttl_seconds: int | None = None,
    ) -> RedisDistributedCache:
        """Create a cache with a client connected to ``url``."""
        client = aioredis.Redis.from_url(url)
        return cls(
            client, key_prefix=key_prefix, default_ttl_seconds=default_ttl_seconds
        )

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> bytes | None:
        data, absolute, sliding = await self._client.hmget(
            self._key(key),
            [DATA_FIELD, ABSOLUTE_EXPIRATION_FIELD, SLIDING_EXPIRATION_FIELD],
        )
        if data is None:
            return None

        await self._apply_sliding(key, absolute, sliding)
        return bytes(data)

    async def set(
        self,
        key: str,
        value: bytes,
        *,
        ttl_seconds: int | None = None,
        sliding_seconds: int | None = None,
    ) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        absolute = int(time.time()) + ttl if ttl is not None else NO_EXPIRATION
        sliding = sliding_seconds if sliding_seconds is not None else NO_EXPIRATION

        redis_key = self._key(key)
        await self._client.hset(
            redis_key,
            mapping={
                DATA_FIELD: value,
                ABSOLUTE_EXPIRATION_FIELD: absolute,
                SLIDING_EXPIRATION_FIELD: sliding,
            },
        )

        expiry = [seconds for seconds in (ttl, sliding_seconds) if seconds is not None]
        if expiry:
            await self._client.expire(redis_key, min(expiry))
        else:
            await self._client.persist(redis_key)

    async def refresh(self, key: str) -> None:
        absolute, sliding = await self._client.hmget(
            self._key(key), [ABSOLUTE_EXPIRATION_FIELD, SLIDING_EXPIRATION_FIELD]
        )
        await self._apply_sliding(key, absolute, sliding)

    async def remove(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def close(self) -> None:
        await self._client.aclose()

    async def _apply_sliding(
        self, key: str, absolute: bytes | None, sliding: bytes | None
    ) -> None:
        if sliding is None or int(sliding) == NO_EXPIRATION:
            return

        expiry = int(sliding)
        if absolute is not None and int(absolute) != NO_EXPIRATION:
            expiry = min(expiry, int(absolute) - int(time.time()))

        if expiry > 0:
            await self._client.expire(self._key(key), expiry)
        else:
            logger.debug("Distributed cache entry reached its deadline", cache_key=key)
            await self.remove(key)
