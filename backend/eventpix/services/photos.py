"""Photo moderation writes shared by event managers and platform admins."""

from __future__ import annotations

import logging
from functools import partial

from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix.core import cache_keys
from eventpix.core.storage import ObjectStorage
from eventpix.models import Event, Photo
from eventpix.services.cleanup import photo_object_keys, schedule_object_deletion
from eventpix.services.stats import (
    commit_photo_mutation,
    patch_stats_for_approve,
    patch_stats_for_delete,
)
from eventpix.services.versioned_cache import VersionedCache

logger = logging.getLogger(__name__)


async def approve_photo_record(
    session: AsyncSession, cache: VersionedCache, photo: Photo
) -> None:
    """Approve one photo; already approved photos leave stats untouched."""
    if photo.is_approved:
        return
    snapshot = await cache.get_stats_cached(photo.event_id)
    photo.is_approved = True
    session.add(photo)
    await session.commit()
    await commit_photo_mutation(cache, photo.event_id, snapshot, patch_stats_for_approve)
    await cache.invalidate_photo(photo.id)


async def delete_photo_record(
    session: AsyncSession,
    cache: VersionedCache,
    storage: ObjectStorage,
    photo: Photo,
    event: Event,
) -> None:
    was_approved = photo.is_approved
    object_keys = photo_object_keys([photo])
    snapshot = await cache.get_stats_cached(photo.event_id)
    await session.delete(photo)
    await session.commit()

    await commit_photo_mutation(
        cache,
        photo.event_id,
        snapshot,
        partial(patch_stats_for_delete, was_approved=was_approved),
    )
    await cache.invalidate_photo(photo.id)
    await cache.delete(cache_keys.user_events_key(event.created_by))
    await schedule_object_deletion(storage, object_keys)
    logger.info(f"Photo {photo.id} deleted from event {event.id}")
