"""Platform moderation endpoints. Every route requires a super-admin."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from eventpix.api.deps import AdminUser, CacheDep, StorageDep
from eventpix.core.storage import StorageError, derive_thumb_key, storage_key
from eventpix.db import SessionDep
from eventpix.models import Event, Photo
from eventpix.schemas import OrphanReport, StorageDeleteRequest, StorageDeleteResult
from eventpix.services.events import delete_event_cascade
from eventpix.services.photos import approve_photo_record, delete_photo_record

logger = logging.getLogger(__name__)

router = APIRouter()

STORAGE_ROOT = "events/"


async def _get_photo(session: SessionDep, photo_id: UUID) -> Photo:
    photo = await session.get(Photo, photo_id)
    if not photo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    return photo


@router.post(
    "/photos/{photo_id}/approve",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Approve any photo",
)
async def admin_approve_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    admin: AdminUser,
) -> None:
    photo = await _get_photo(session, photo_id)
    await approve_photo_record(session, cache, photo)
    logger.info(f"Admin {admin.id} approved photo {photo_id}")


@router.delete(
    "/photos/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete any photo",
)
async def admin_delete_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    storage: StorageDep,
    admin: AdminUser,
) -> None:
    photo = await _get_photo(session, photo_id)
    event = await session.get(Event, photo.event_id)
    await delete_photo_record(session, cache, storage, photo, event)
    logger.info(f"Admin {admin.id} deleted photo {photo_id}")


@router.delete(
    "/events/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete any event",
)
async def admin_delete_event(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    storage: StorageDep,
    admin: AdminUser,
) -> None:
    event = await session.get(Event, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    await delete_event_cascade(session, cache, storage, event)
    logger.info(f"Admin {admin.id} deleted event {event_id}")


@router.get("/storage/orphans", response_model=OrphanReport, summary="Unreferenced objects")
async def list_orphaned_objects(
    session: SessionDep,
    storage: StorageDep,
    admin: AdminUser,
) -> OrphanReport:
    try:
        object_keys = await storage.list_keys(STORAGE_ROOT)
    except StorageError as e:
        logger.error(f"Orphan scan failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Object storage is unavailable",
        ) from e

    file_paths = (await session.exec(select(Photo.file_path))).all()
    referenced: set[str] = set()
    for file_path in file_paths:
        key = storage_key(file_path)
        if key:
            referenced.update((key, derive_thumb_key(key)))

    return OrphanReport(
        object_count=len(object_keys),
        photo_count=len(file_paths),
        orphaned_keys=[key for key in object_keys if key not in referenced],
    )


@router.post(
    "/storage/delete",
    response_model=StorageDeleteResult,
    summary="Delete objects by key",
)
async def delete_storage_objects(
    payload: StorageDeleteRequest,
    storage: StorageDep,
    admin: AdminUser,
) -> StorageDeleteResult:
    deleted = 0
    failed: list[str] = []
    for key in payload.keys:
        try:
            await storage.delete_object(key)
            deleted += 1
        except StorageError as e:
            logger.warning(f"Admin delete failed for {key}: {e}")
            failed.append(key)
    logger.info(f"Admin {admin.id} deleted {deleted} storage objects")
    return StorageDeleteResult(deleted=deleted, failed=failed)
