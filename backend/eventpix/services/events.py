"""Cached reads for events, photos and timelines.

Values are cached in their JSON form, so loaders return ``jsonable_encoder``
output and cache hits and misses have the same shape.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import or_
from sqlmodel import delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix.core import cache_keys
from eventpix.core.storage import ObjectStorage, event_photos_prefix
from eventpix.models import Event, EventMember, Photo, TimelineEntry
from eventpix.schemas import EventPublicRead, PhotoRead, TimelineEntryRead
from eventpix.services.cleanup import schedule_prefix_purge
from eventpix.services.permissions import normalize_access_code
from eventpix.services.versioned_cache import VersionedCache

logger = logging.getLogger(__name__)


async def get_event_payload(
    cache: VersionedCache, session: AsyncSession, event_id: UUID
) -> Optional[dict[str, Any]]:
    async def load() -> Optional[dict[str, Any]]:
        event = await session.get(Event, event_id)
        if event is None:
            return None
        return jsonable_encoder(EventPublicRead.model_validate(event))

    return await cache.versioned_cache_wrap(
        event_id, cache_keys.ARTIFACT_EVENT, cache_keys.EVENT_BY_ID_TTL_SECONDS, load
    )


async def find_event_id_by_code(
    cache: VersionedCache, session: AsyncSession, code: Optional[str]
) -> Optional[UUID]:
    """Resolve an access code to an event id. Blank codes never match."""
    normalized = normalize_access_code(code)
    if normalized is None:
        return None

    async def load() -> Optional[str]:
        event = (
            await session.exec(select(Event).where(Event.access_code == normalized))
        ).one_or_none()
        return str(event.id) if event else None

    event_id = await cache.cache_wrap(
        cache_keys.event_code_key(normalized),
        cache_keys.EVENT_BY_CODE_TTL_SECONDS,
        load,
    )
    return UUID(event_id) if event_id else None


async def list_user_events(
    cache: VersionedCache, session: AsyncSession, user_id: UUID
) -> list[dict[str, Any]]:
    """Events the user owns or belongs to, newest first."""

    async def load() -> list[dict[str, Any]]:
        member_subquery = select(EventMember.event_id).where(
            EventMember.user_id == user_id
        )
        statement = (
            select(Event)
            .where(or_(Event.created_by == user_id, Event.id.in_(member_subquery)))
            .order_by(Event.updated_at.desc())
        )
        events = (await session.exec(statement)).all()
        return [jsonable_encoder(EventPublicRead.model_validate(e)) for e in events]

    return await cache.cache_wrap(
        cache_keys.user_events_key(user_id),
        cache_keys.USER_EVENTS_LIST_TTL_SECONDS,
        load,
    )


async def list_event_photos(
    cache: VersionedCache,
    session: AsyncSession,
    event_id: UUID,
    *,
    include_pending: bool,
) -> list[dict[str, Any]]:
    artifact = (
        cache_keys.ARTIFACT_PHOTOS if include_pending else cache_keys.ARTIFACT_PHOTOS_APPROVED
    )

    async def load() -> list[dict[str, Any]]:
        statement = select(Photo).where(Photo.event_id == event_id)
        if not include_pending:
            statement = statement.where(Photo.is_approved == True)  # noqa: E712
        statement = statement.order_by(Photo.uploaded_at.desc())
        photos = (await session.exec(statement)).all()
        return [jsonable_encoder(PhotoRead.model_validate(p)) for p in photos]

    return await cache.versioned_cache_wrap(
        event_id, artifact, cache_keys.EVENT_PHOTOS_TTL_SECONDS, load
    )


async def list_timeline(
    cache: VersionedCache, session: AsyncSession, event_id: UUID
) -> list[dict[str, Any]]:
    async def load() -> list[dict[str, Any]]:
        statement = (
            select(TimelineEntry)
            .where(TimelineEntry.event_id == event_id)
            .order_by(TimelineEntry.time)
        )
        entries = (await session.exec(statement)).all()
        return [jsonable_encoder(TimelineEntryRead.model_validate(e)) for e in entries]

    return await cache.cache_wrap(
        cache_keys.event_timeline_key(event_id),
        cache_keys.EVENT_TIMELINE_TTL_SECONDS,
        load,
    )


async def get_photo_meta(
    cache: VersionedCache, session: AsyncSession, photo_id: UUID
) -> Optional[dict[str, Any]]:
    """Small per-photo record used to authorise URL requests without a DB hit."""

    async def load() -> Optional[dict[str, Any]]:
        photo = await session.get(Photo, photo_id)
        if photo is None:
            return None
        return {
            "event_id": str(photo.event_id),
            "file_path": photo.file_path,
            "is_approved": photo.is_approved,
            "original_filename": photo.original_filename,
        }

    return await cache.cache_wrap(
        cache_keys.photo_meta_key(photo_id),
        cache_keys.PHOTO_META_TTL_SECONDS,
        load,
    )


async def audience_list_keys(session: AsyncSession, event: Event) -> list[str]:
    """Event-list keys of the owner and every member, which embed the event."""
    member_ids = (
        await session.exec(
            select(EventMember.user_id).where(EventMember.event_id == event.id)
        )
    ).all()
    user_ids = {event.created_by, *member_ids}
    return [cache_keys.user_events_key(user_id) for user_id in user_ids]


async def delete_event_cascade(
    session: AsyncSession,
    cache: VersionedCache,
    storage: ObjectStorage,
    event: Event,
) -> None:
    """Remove an event with its photos, members and timeline, then its objects."""
    photo_ids = (
        await session.exec(select(Photo.id).where(Photo.event_id == event.id))
    ).all()
    list_keys = await audience_list_keys(session, event)
    code_key = cache_keys.event_code_key(event.access_code)

    await session.exec(delete(TimelineEntry).where(TimelineEntry.event_id == event.id))
    await session.exec(delete(Photo).where(Photo.event_id == event.id))
    await session.exec(delete(EventMember).where(EventMember.event_id == event.id))
    await session.delete(event)
    await session.commit()

    await schedule_prefix_purge(storage, event_photos_prefix(event.id))
    await cache.invalidate_event(event.id, None, code_key, *list_keys)
    for photo_id in photo_ids:
        await cache.invalidate_photo(photo_id)
    logger.info(f"Event {event.id} deleted with {len(photo_ids)} photos")


