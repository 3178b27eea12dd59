"""Celery tasks for object storage cleanup."""

from __future__ import annotations

import logging

from eventpix.celery_app import celery_app
from eventpix.core.storage import StorageError, get_storage

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def delete_objects_task(self, keys: list[str]) -> dict:
    """Delete photo originals and thumbnails that no longer have a row."""
    storage = get_storage()
    failed: list[str] = []
    for key in keys:
        try:
            storage.delete_object_sync(key)
        except StorageError as exc:
            logger.warning(f"Error deleting object {key}: {exc}")
            failed.append(key)
    if failed:
        raise self.retry(exc=StorageError(f"{len(failed)} objects not deleted"), args=[failed])
    logger.info(f"Deleted {len(keys)} objects from storage")
    return {"deleted": len(keys)}


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def purge_prefix_task(self, prefix: str) -> dict:
    """Delete every object under a prefix, used when an event is removed."""
    storage = get_storage()
    try:
        keys = storage.list_keys_sync(prefix)
        for key in keys:
            storage.delete_object_sync(key)
    except StorageError as exc:
        logger.error(f"Error purging prefix {prefix}: {exc}", exc_info=True)
        raise self.retry(exc=exc)
    logger.info(f"Purged {len(keys)} objects under {prefix}")
    return {"deleted": len(keys)}
