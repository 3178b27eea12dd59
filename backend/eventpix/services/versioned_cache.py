"""Versioned read-through cache over the key-value store.

Every event owns a version counter. Derived artifacts for the event (event
payload, photo lists, stats) live under ``{event_id}::{version}::{artifact}``,
so bumping the counter makes all of them unreachable at once without
enumerating keys.

A handful of artifacts are addressed by fixed keys instead (photo metadata,
signed URL mirrors, the timeline and per-user event lists). Handlers delete
those explicitly when the underlying row changes.

The cache is never authoritative: every store fault is logged and treated as
a miss (reads) or accepted loss (writes and deletes).
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from fastapi.encoders import jsonable_encoder

from eventpix.core import cache_keys
from eventpix.core.cache import CACHE_ERRORS, KeyValueStore, get_store
from eventpix.schemas.stats import EventStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[T]]


class VersionedCache:
    """Cache facade used by request handlers."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self._store = store

    @property
    def store(self) -> KeyValueStore:
        return self._store if self._store is not None else get_store()

    # ------------------------------------------------------------------
    # Version counters
    # ------------------------------------------------------------------

    async def get_version(self, event_id: UUID | str) -> int:
        """Current version for the event; initialises the counter to 1."""
        key = cache_keys.event_version_key(event_id)
        try:
            raw = await self.store.get(key)
            if raw is not None and int(raw) >= 1:
                return int(raw)
            created = await self.store.set(
                key, 1, ex=cache_keys.EVENT_VERSION_TTL_SECONDS, nx=True
            )
            if created:
                return 1
            # Another request initialised or bumped it first
            raw = await self.store.get(key)
            return max(1, int(raw)) if raw is not None else 1
        except CACHE_ERRORS as e:
            logger.warning(f"Cache version read failed for event {event_id}: {e}")
            return 1

    async def bump_version(self, event_id: UUID | str) -> int:
        """
        Atomically advance the event's version.

        Never raises. If the store rejects the increment, the counter is
        overwritten with a millisecond timestamp, which is larger than any
        counter reached through increments.
        """
        key = cache_keys.event_version_key(event_id)
        try:
            version = await self.store.incr(key)
            if version <= 1:
                # The pointer had expired or was never read; 1 is the implicit
                # initial version, so move past it
                version = await self.store.incr(key)
            await self.store.expire(key, cache_keys.EVENT_VERSION_TTL_SECONDS)
            logger.debug(f"Bumped cache version for event {event_id} to {version}")
            return version
        except CACHE_ERRORS as e:
            fallback = int(time.time() * 1000)
            logger.warning(
                f"Cache version bump failed for event {event_id}: {e}. "
                f"Forcing version {fallback}"
            )
            try:
                await self.store.set(
                    key, fallback, ex=cache_keys.EVENT_VERSION_TTL_SECONDS
                )
            except CACHE_ERRORS as set_error:
                logger.warning(
                    f"Forced version write failed for event {event_id}: {set_error}"
                )
            return fallback

    async def versioned_key(self, event_id: UUID | str, artifact: str) -> str:
        version = await self.get_version(event_id)
        return cache_keys.versioned_key(event_id, version, artifact)

    # ------------------------------------------------------------------
    # JSON get/set
    # ------------------------------------------------------------------

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = await self.store.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache get error for key {key}: {e}")
            return None

    async def set_json(self, key: str, value: Any, ttl: int) -> None:
        try:
            payload = json.dumps(jsonable_encoder(value))
            await self.store.set(key, payload, ex=ttl)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache set error for key {key}: {e}")

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.store.delete(*keys)
            logger.debug(f"Invalidated cache keys {list(keys)}")
        except CACHE_ERRORS as e:
            logger.warning(f"Cache delete error for keys {list(keys)}: {e}")

    # ------------------------------------------------------------------
    # Read-through wrappers
    # ------------------------------------------------------------------

    async def cache_wrap(self, key: str, ttl: int, loader: Loader[T]) -> T:
        """
        Return the cached value for ``key``, or load, store and return it.

        ``None`` results are not cached. Store failures never prevent the
        loader's value from being returned.
        """
        cached = await self.get_json(key)
        if cached is not None:
            return cached
        data = await loader()
        if data is not None:
            await self.set_json(key, data, ttl)
        return data

    async def versioned_cache_wrap(
        self,
        event_id: UUID | str,
        artifact: str,
        ttl: int,
        loader: Loader[T],
    ) -> T:
        key = await self.versioned_key(event_id, artifact)
        return await self.cache_wrap(key, ttl, loader)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    async def get_stats_cached(self, event_id: UUID | str) -> Optional[EventStats]:
        key = await self.versioned_key(event_id, cache_keys.ARTIFACT_STATS)
        cached = await self.get_json(key)
        if cached is None:
            return None
        try:
            return EventStats.model_validate(cached)
        except ValueError as e:
            logger.warning(f"Discarding malformed stats for event {event_id}: {e}")
            return None

    async def set_stats_cached(self, event_id: UUID | str, stats: EventStats) -> None:
        key = await self.versioned_key(event_id, cache_keys.ARTIFACT_STATS)
        await self.set_json(
            key, stats.model_dump(mode="json"), cache_keys.EVENT_STATS_TTL_SECONDS
        )

    # ------------------------------------------------------------------
    # Non-versioned auxiliary keys
    # ------------------------------------------------------------------

    async def invalidate_photo(self, photo_id: UUID | str) -> None:
        """Drop metadata and signed URL mirrors held for one photo."""
        await self.delete(*cache_keys.photo_keys(photo_id))

    async def invalidate_event(
        self,
        event_id: UUID | str,
        owner_id: Optional[UUID | str] = None,
        *extra_keys: str,
    ) -> int:
        """Bump the event version and drop its fixed-key artifacts."""
        version = await self.bump_version(event_id)
        keys = [cache_keys.event_timeline_key(event_id), *extra_keys]
        if owner_id is not None:
            keys.append(cache_keys.user_events_key(owner_id))
        await self.delete(*keys)
        return version
