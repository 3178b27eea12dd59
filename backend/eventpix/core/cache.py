"""Key-value store used by the cache layer.

Production runs against Redis through ``redis.asyncio``. When no Redis URL is
configured, or Redis cannot be reached on startup, the process falls back to
an in-memory store with the same async interface.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Protocol

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError, RedisError

from eventpix.core.config import settings

logger = logging.getLogger(__name__)

# Faults from the store that the cache layer treats as a miss / no-op
CACHE_ERRORS: tuple[type[BaseException], ...] = (
    RedisError,
    OSError,
    asyncio.TimeoutError,
    ValueError,
    TypeError,
)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(
        self,
        key: str,
        value: str | int,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> Optional[bool]: ...

    async def delete(self, *keys: str) -> int: ...

    async def incr(self, key: str) -> int: ...

    async def expire(self, key: str, time: int) -> bool: ...

    async def ping(self) -> bool: ...

    async def aclose(self) -> None: ...


class InMemoryStore:
    """Fallback in-memory store when Redis is unavailable."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self._lock = asyncio.Lock()

    def _alive(self, key: str) -> bool:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= _now():
            self._data.pop(key, None)
            self._expires.pop(key, None)
            return False
        return key in self._data

    async def get(self, key: str) -> Optional[str]:
        if not self._alive(key):
            return None
        return self._data[key]

    async def set(
        self,
        key: str,
        value: str | int,
        ex: Optional[int] = None,
        nx: bool = False,
    ) -> Optional[bool]:
        async with self._lock:
            if nx and self._alive(key):
                return None
            self._data[key] = str(value)
            if ex:
                self._expires[key] = _now() + ex
            else:
                self._expires.pop(key, None)
            return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        async with self._lock:
            for key in keys:
                if self._alive(key):
                    removed += 1
                self._data.pop(key, None)
                self._expires.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        async with self._lock:
            current = int(self._data[key]) if self._alive(key) else 0
            current += 1
            self._data[key] = str(current)
            return current

    async def expire(self, key: str, time: int) -> bool:
        if not self._alive(key):
            return False
        self._expires[key] = _now() + time
        return True

    async def ttl(self, key: str) -> int:
        if not self._alive(key):
            return -2
        deadline = self._expires.get(key)
        if deadline is None:
            return -1
        return max(0, int(deadline - _now()))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


def _now() -> float:
    return time.monotonic()


_store: Optional[KeyValueStore] = None


async def init_store() -> KeyValueStore:
    """Connect to Redis, or fall back to the in-memory store."""
    global _store

    if not settings.REDIS_CACHE_URL:
        logger.info("REDIS_CACHE_URL not set. Using in-memory cache store.")
        _store = InMemoryStore()
        return _store

    client = aioredis.Redis.from_url(
        settings.REDIS_CACHE_URL,
        max_connections=50,
        decode_responses=True,
        socket_timeout=2,
        socket_connect_timeout=2,
    )
    try:
        await client.ping()
        logger.info(f"Redis cache connected: {settings.REDIS_CACHE_URL}")
        _store = client
    except (ConnectionError, RedisError, OSError) as e:
        logger.warning(f"Failed to connect to Redis cache: {e}. Using fallback in-memory cache.")
        await client.aclose()
        _store = InMemoryStore()
    return _store


def get_store() -> KeyValueStore:
    """Get the process-wide store, creating the in-memory one if not initialised."""
    global _store
    if _store is None:
        _store = InMemoryStore()
    return _store


def set_store(store: Optional[KeyValueStore]) -> None:
    global _store
    _store = store


async def close_store() -> None:
    global _store
    if _store is not None:
        try:
            await _store.aclose()
        except CACHE_ERRORS as e:
            logger.warning(f"Error closing cache store: {e}")
    _store = None
