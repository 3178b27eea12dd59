import logging
from functools import partial
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import RedirectResponse, StreamingResponse
from sqlmodel import select

from eventpix.api.deps import (
    CacheDep,
    CurrentUser,
    IdentityDep,
    ResolverDep,
    StorageDep,
)
from eventpix.core import cache_keys
from eventpix.core.config import settings
from eventpix.core.limiter import limiter
from eventpix.core.storage import (
    S3_PREFIX,
    StorageError,
    derive_thumb_key,
    event_photos_prefix,
    generate_photo_key,
    storage_key,
)
from eventpix.core.timeutils import utcnow
from eventpix.db import SessionDep
from eventpix.models import Event, Photo
from eventpix.schemas import (
    BulkApproveRequest,
    BulkApproveResponse,
    BulkDownloadRequest,
    FinalizeItem,
    FinalizeRequest,
    FinalizeResponse,
    GuestFinalizeRequest,
    PhotoDetail,
    PhotoRead,
    PresignRequest,
    PresignResponse,
)
from eventpix.services.archive import (
    archive_base_name,
    attachment_disposition,
    stream_photo_archive,
)
from eventpix.services.events import get_photo_meta
from eventpix.services.permissions import AccessResolver, Identity, ensure_event_access
from eventpix.services.photos import approve_photo_record, delete_photo_record
from eventpix.services.stats import (
    commit_photo_mutation,
    patch_stats_for_approve,
    patch_stats_for_insert,
)
from eventpix.services.versioned_cache import VersionedCache

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_upload_event(
    resolver: AccessResolver, event_id: UUID, identity: Identity
) -> Event:
    event = await resolver.get_event(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    if not await resolver.can_upload(event, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Uploads are not allowed for this event",
        )
    return event


async def _insert_photos(
    session: SessionDep,
    cache: VersionedCache,
    event: Event,
    items: list[FinalizeItem],
    *,
    uploaded_by: Optional[UUID] = None,
    guest_name: Optional[str] = None,
    guest_email: Optional[str] = None,
) -> FinalizeResponse:
    """Record uploaded objects. Keys outside the event's photo prefix are skipped."""
    prefix = event_photos_prefix(event.id)
    valid = [item for item in items if item.key.startswith(prefix) and ".." not in item.key]
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No valid items"
        )

    approved = not event.require_approval
    uploaded_at = utcnow()
    photos = [
        Photo(
            event_id=event.id,
            filename=item.key.rsplit("/", 1)[-1],
            original_filename=item.original_filename,
            mime_type=item.mime_type,
            file_size=item.file_size,
            file_path=f"{S3_PREFIX}{item.key}",
            uploaded_by=uploaded_by,
            guest_name=guest_name,
            guest_email=guest_email,
            is_approved=approved,
            uploaded_at=uploaded_at,
        )
        for item in valid
    ]
    snapshot = await cache.get_stats_cached(event.id)
    session.add_all(photos)
    await session.commit()

    count = len(photos)
    await commit_photo_mutation(
        cache,
        event.id,
        snapshot,
        partial(
            patch_stats_for_insert,
            approved_count=count if approved else 0,
            unapproved_count=0 if approved else count,
            uploaded_at=uploaded_at,
        ),
    )
    await cache.delete(cache_keys.user_events_key(event.created_by))
    logger.info(f"Finalized {count} photos for event {event.id} (approved={approved})")
    return FinalizeResponse(count=count, photo_ids=[photo.id for photo in photos])


async def _authorize_photo(
    cache: VersionedCache,
    session: SessionDep,
    resolver: AccessResolver,
    photo_id: UUID,
    identity: Identity,
) -> dict[str, Any]:
    """Photo meta for a caller allowed to see it. Pending photos 404 for non-managers."""
    meta = await get_photo_meta(cache, session, photo_id)
    if meta is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    event = await ensure_event_access(resolver, UUID(meta["event_id"]), identity)
    if not meta["is_approved"] and not await resolver.can_manage(event, identity):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    return meta


async def _mirrored_url(
    cache: VersionedCache,
    mirror_key: str,
    mirror_ttl: int,
    sign,
) -> str:
    """Signed URL from the mirror key, or a freshly signed one stored there."""
    cached = await cache.get_json(mirror_key)
    if cached:
        return cached
    try:
        url = await sign()
    except StorageError as e:
        logger.error(f"Signing failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Object storage is unavailable",
        ) from e
    await cache.set_json(mirror_key, url, mirror_ttl)
    return url


def _object_key(meta: dict[str, Any]) -> str:
    key = storage_key(meta["file_path"])
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo file not available"
        )
    return key


@router.post("/presign", response_model=PresignResponse, summary="Signed upload URL")
async def presign_upload(
    payload: PresignRequest,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> PresignResponse:
    """Works for members and for guests holding the event's access code."""
    if payload.file_size > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.MAX_UPLOAD_BYTES} bytes",
        )
    if not payload.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Only images can be uploaded"
        )
    event = await _get_upload_event(resolver, payload.event_id, identity)

    key = generate_photo_key(event.id, payload.filename)
    try:
        upload_url = await storage.signed_upload_url(key, cache_keys.UPLOAD_URL_TTL_SECONDS)
    except StorageError as e:
        logger.error(f"Presign failed for event {event.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Object storage is unavailable",
        ) from e
    return PresignResponse(
        key=key, upload_url=upload_url, expires_in=cache_keys.UPLOAD_URL_TTL_SECONDS
    )


@router.post("/finalize", response_model=FinalizeResponse, summary="Record uploads")
async def finalize_uploads(
    payload: FinalizeRequest,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    current_user: CurrentUser,
) -> FinalizeResponse:
    event = await _get_upload_event(resolver, payload.event_id, identity)
    return await _insert_photos(
        session, cache, event, payload.items, uploaded_by=current_user.id
    )


@router.post(
    "/guest/finalize",
    response_model=FinalizeResponse,
    summary="Record guest uploads",
)
async def finalize_guest_uploads(
    payload: GuestFinalizeRequest,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> FinalizeResponse:
    event = await _get_upload_event(resolver, payload.event_id, identity)
    return await _insert_photos(
        session,
        cache,
        event,
        payload.items,
        uploaded_by=identity.user_id,
        guest_name=payload.guest_name,
        guest_email=payload.guest_email,
    )


@router.post(
    "/approve-bulk",
    response_model=BulkApproveResponse,
    summary="Approve several pending photos",
)
async def approve_photos_bulk(
    payload: BulkApproveRequest,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> BulkApproveResponse:
    if not await resolver.can_manage_event(payload.event_id, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event host or organizers can do this",
        )
    pending = (
        await session.exec(
            select(Photo).where(
                Photo.event_id == payload.event_id,
                Photo.id.in_(payload.photo_ids),
                Photo.is_approved == False,  # noqa: E712
            )
        )
    ).all()
    if not pending:
        return BulkApproveResponse(approved=0)

    snapshot = await cache.get_stats_cached(payload.event_id)
    for photo in pending:
        photo.is_approved = True
        session.add(photo)
    await session.commit()

    await commit_photo_mutation(
        cache,
        payload.event_id,
        snapshot,
        partial(patch_stats_for_approve, count=len(pending)),
    )
    for photo in pending:
        await cache.invalidate_photo(photo.id)
    return BulkApproveResponse(approved=len(pending))


@router.post("/bulk-download", summary="ZIP of selected photos")
@limiter.limit(settings.BULK_DOWNLOAD_RATE_LIMIT)
async def bulk_download_photos(
    request: Request,
    payload: BulkDownloadRequest,
    session: SessionDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> StreamingResponse:
    """
    Stream the selected photos as one ZIP, in request order.

    Every photo must belong to the same event. Pending photos are only
    included for event managers.
    """
    photo_ids = list(dict.fromkeys(payload.photo_ids))
    photos = (await session.exec(select(Photo).where(Photo.id.in_(photo_ids)))).all()
    if not photos:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No photos found"
        )
    if len({photo.event_id for photo in photos}) > 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="All selected photos must belong to the same event",
        )
    event = await ensure_event_access(resolver, photos[0].event_id, identity)
    if not await resolver.can_manage(event, identity):
        photos = [photo for photo in photos if photo.is_approved]
        if not photos:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="No photos found"
            )

    position = {photo_id: index for index, photo_id in enumerate(photo_ids)}
    photos = sorted(photos, key=lambda photo: position[photo.id])
    zip_name = f"{archive_base_name(event.name)}.zip"
    total_bytes = sum(photo.file_size for photo in photos)
    logger.info(f"Bulk download of {len(photos)} photos from event {event.id}")
    return StreamingResponse(
        stream_photo_archive(storage, photos),
        media_type="application/zip",
        headers={
            "Content-Disposition": attachment_disposition(zip_name),
            "Cache-Control": "no-store",
            "X-Total-Bytes": str(total_bytes),
        },
    )


@router.get("/{photo_id}", response_model=PhotoDetail, summary="Photo with signed URL")
async def read_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> PhotoDetail:
    meta = await _authorize_photo(cache, session, resolver, photo_id, identity)
    photo = await session.get(Photo, photo_id)
    if photo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    key = _object_key(meta)
    url = await _mirrored_url(
        cache,
        cache_keys.photo_url_key(photo_id),
        cache_keys.SIGNED_URL_MIRROR_SECONDS,
        partial(
            storage.signed_download_url,
            key,
            cache_keys.SIGNED_URL_TTL_SECONDS,
            meta["original_filename"],
        ),
    )
    return PhotoDetail(**PhotoRead.model_validate(photo).model_dump(), url=url)


@router.get("/{photo_id}/thumb", summary="Redirect to the thumbnail")
async def read_photo_thumb(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> RedirectResponse:
    """Signed thumbnail URL, or the original when no thumbnail was stored."""
    meta = await _authorize_photo(cache, session, resolver, photo_id, identity)
    key = _object_key(meta)

    async def sign() -> str:
        thumb_key = derive_thumb_key(key)
        try:
            target = thumb_key if await storage.head_object(thumb_key) else key
        except StorageError as e:
            logger.warning(f"Thumbnail lookup failed for photo {photo_id}: {e}")
            target = key
        return await storage.signed_download_url(target, cache_keys.THUMB_URL_TTL_SECONDS)

    url = await _mirrored_url(
        cache,
        cache_keys.photo_thumb_url_key(photo_id),
        cache_keys.THUMB_URL_MIRROR_SECONDS,
        sign,
    )
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/{photo_id}/download", summary="Redirect to a download of the original")
async def download_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> RedirectResponse:
    """Short-lived signed URL that makes the browser save the file."""
    meta = await _authorize_photo(cache, session, resolver, photo_id, identity)
    key = _object_key(meta)
    try:
        url = await storage.signed_download_url(
            key, cache_keys.DOWNLOAD_URL_TTL_SECONDS, meta["original_filename"]
        )
    except StorageError as e:
        logger.error(f"Download signing failed for photo {photo_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Object storage is unavailable",
        ) from e
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post(
    "/{photo_id}/approve",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Approve a pending photo",
)
async def approve_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> None:
    photo = await session.get(Photo, photo_id)
    if not photo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    if not await resolver.can_manage_event(photo.event_id, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event host or organizers can do this",
        )
    await approve_photo_record(session, cache, photo)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a photo",
)
async def delete_photo(
    photo_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    storage: StorageDep,
) -> None:
    """The uploader, the event owner and event managers may delete."""
    photo = await session.get(Photo, photo_id)
    if not photo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found"
        )
    event = await session.get(Event, photo.event_id)
    is_uploader = identity.user_id is not None and identity.user_id == photo.uploaded_by
    if not is_uploader and not await resolver.can_manage(event, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot delete this photo",
        )
    await delete_photo_record(session, cache, storage, photo, event)
