from __future__ import annotations

import logging
import re
from datetime import timedelta
from typing import Any, Iterable, List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status
from sqlmodel import select

from eventpix.api.deps import CacheDep, IdentityDep, ResolverDep
from eventpix.core.timeutils import as_utc
from eventpix.db import SessionDep
from eventpix.models import Event, TimelineEntry
from eventpix.schemas import (
    TimelineAdjust,
    TimelineEntryCreate,
    TimelineEntryRead,
    TimelineEntryUpdate,
)
from eventpix.services.events import list_timeline
from eventpix.services.ics import IcsEvent, build_calendar
from eventpix.services.permissions import ensure_event_access, ensure_timeline_manager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_entry(session: SessionDep, entry_id: UUID) -> TimelineEntry:
    entry = await session.get(TimelineEntry, entry_id)
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Timeline entry not found"
        )
    return entry


def _calendar_response(event: Event, entries: Iterable[TimelineEntry], title: str) -> Response:
    ics = build_calendar(
        event.name or "Event Timeline",
        (
            IcsEvent(
                uid=f"eventpix-{event.id}-{entry.id}@eventpix",
                start=entry.time,
                summary=entry.title,
                description=entry.description,
                location=entry.location,
            )
            for entry in entries
        ),
    )
    filename = re.sub(r"[^a-z0-9]", "_", title or "timeline", flags=re.IGNORECASE)
    return Response(
        content=ics,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}.ics"',
            "Cache-Control": "no-store",
        },
    )


@router.get(
    "/events/{event_id}",
    response_model=List[TimelineEntryRead],
    summary="Event timeline",
)
async def read_timeline(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> list[dict[str, Any]]:
    await ensure_event_access(resolver, event_id, identity)
    return await list_timeline(cache, session, event_id)


@router.get("/events/{event_id}/ics", summary="Whole timeline as iCalendar")
async def export_timeline_ics(
    event_id: UUID,
    session: SessionDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> Response:
    event = await ensure_event_access(resolver, event_id, identity)
    entries = (
        await session.exec(
            select(TimelineEntry)
            .where(TimelineEntry.event_id == event_id)
            .order_by(TimelineEntry.time)
        )
    ).all()
    return _calendar_response(event, entries, event.name)


@router.post(
    "/",
    response_model=TimelineEntryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a timeline entry",
)
async def create_entry(
    payload: TimelineEntryCreate,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> TimelineEntry:
    await ensure_timeline_manager(resolver, payload.event_id, identity)
    entry = TimelineEntry(**payload.model_dump())
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    await cache.invalidate_event(entry.event_id)
    return entry


@router.put("/{entry_id}", response_model=TimelineEntryRead, summary="Update an entry")
async def update_entry(
    entry_id: UUID,
    payload: TimelineEntryUpdate,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> TimelineEntry:
    entry = await _get_entry(session, entry_id)
    await ensure_timeline_manager(resolver, entry.event_id, identity)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(entry, field, value)
    entry.touch()
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    await cache.invalidate_event(entry.event_id)
    return entry


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an entry",
)
async def delete_entry(
    entry_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> None:
    entry = await _get_entry(session, entry_id)
    await ensure_timeline_manager(resolver, entry.event_id, identity)
    event_id = entry.event_id
    await session.delete(entry)
    await session.commit()
    await cache.invalidate_event(event_id)


@router.post(
    "/{entry_id}/adjust",
    response_model=TimelineEntryRead,
    summary="Shift one entry by 15 minutes",
)
async def adjust_entry(
    entry_id: UUID,
    payload: TimelineAdjust,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> TimelineEntry:
    entry = await _get_entry(session, entry_id)
    await ensure_timeline_manager(resolver, entry.event_id, identity)
    entry.time = as_utc(entry.time) + timedelta(minutes=payload.delta_minutes)
    entry.touch()
    session.add(entry)
    await session.commit()
    await session.refresh(entry)
    await cache.invalidate_event(entry.event_id)
    return entry


@router.post(
    "/events/{event_id}/adjust-all",
    response_model=List[TimelineEntryRead],
    summary="Shift the whole timeline by 15 minutes",
)
async def adjust_all_entries(
    event_id: UUID,
    payload: TimelineAdjust,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> List[TimelineEntry]:
    await ensure_timeline_manager(resolver, event_id, identity)
    entries = (
        await session.exec(
            select(TimelineEntry)
            .where(TimelineEntry.event_id == event_id)
            .order_by(TimelineEntry.time)
        )
    ).all()
    delta = timedelta(minutes=payload.delta_minutes)
    for entry in entries:
        entry.time = as_utc(entry.time) + delta
        entry.touch()
        session.add(entry)
    await session.commit()
    await cache.invalidate_event(event_id)
    logger.info(f"Shifted {len(entries)} timeline entries of event {event_id} by {payload.delta_minutes} min")
    return list(entries)


@router.get("/{entry_id}/ics", summary="Single entry as iCalendar")
async def export_entry_ics(
    entry_id: UUID,
    session: SessionDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> Response:
    entry = await _get_entry(session, entry_id)
    event = await ensure_event_access(resolver, entry.event_id, identity)
    return _calendar_response(event, [entry], entry.title)
