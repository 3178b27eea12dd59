"""Object storage cleanup after photo or event deletion.

Work is queued on Celery; when the broker is unavailable it runs inline on a
best-effort basis. Deleting rows never waits on, or fails because of, storage.
"""

from __future__ import annotations

import logging
from typing import Iterable

from eventpix.core.celery_utils import safe_celery_delay
from eventpix.core.storage import ObjectStorage, StorageError, derive_thumb_key, storage_key
from eventpix.models import Photo
from eventpix.tasks.storage import delete_objects_task, purge_prefix_task

logger = logging.getLogger(__name__)


def photo_object_keys(photos: Iterable[Photo]) -> list[str]:
    """Original and thumbnail keys for photos stored in object storage."""
    keys: list[str] = []
    for photo in photos:
        key = storage_key(photo.file_path)
        if key:
            keys += [key, derive_thumb_key(key)]
    return keys


async def schedule_object_deletion(storage: ObjectStorage, keys: list[str]) -> None:
    if not keys:
        return
    if safe_celery_delay(delete_objects_task, keys) is not None:
        return
    await _delete_inline(storage, keys)


async def _delete_inline(storage: ObjectStorage, keys: list[str]) -> None:
    for key in keys:
        try:
            await storage.delete_object(key)
        except StorageError as e:
            logger.warning(f"Inline delete failed for {key}: {e}")


async def schedule_prefix_purge(storage: ObjectStorage, prefix: str) -> None:
    if safe_celery_delay(purge_prefix_task, prefix) is not None:
        return
    try:
        keys = await storage.list_keys(prefix)
    except StorageError as e:
        logger.warning(f"Inline purge of {prefix} failed: {e}")
        return
    await _delete_inline(storage, keys)
