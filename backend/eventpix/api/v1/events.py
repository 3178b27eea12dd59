import logging
from typing import Any, Callable, List
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
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
from eventpix.core.security import generate_access_code, generate_event_code
from eventpix.db import SessionDep
from eventpix.models import Event
from eventpix.schemas import (
    AccessCodeRegenerated,
    AccessCodeResult,
    AccessCodeVerify,
    DashboardStats,
    DashboardStatsRequest,
    EventCreate,
    EventPublicRead,
    EventRead,
    EventReadWithRole,
    EventStats,
    EventUpdate,
    PhotoRead,
)
from eventpix.services.events import (
    audience_list_keys,
    delete_event_cascade,
    find_event_id_by_code,
    get_event_payload,
    list_event_photos,
    list_user_events,
)
from eventpix.services.permissions import (
    HOST,
    add_event_member,
    ensure_event_access,
    ensure_event_owner,
)
from eventpix.services.stats import aggregate_stats, get_event_stats

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_CODE_ATTEMPTS = 10


async def _unique_code(session: SessionDep, column, generate: Callable[[], str]) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate()
        taken = (await session.exec(select(Event.id).where(column == code))).first()
        if taken is None:
            return code
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Could not allocate a unique event code, try again",
    )


@router.post(
    "/",
    response_model=EventRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
async def create_event(
    payload: EventCreate,
    session: SessionDep,
    cache: CacheDep,
    current_user: CurrentUser,
) -> Event:
    event = Event(
        **payload.model_dump(),
        event_code=await _unique_code(session, Event.event_code, generate_event_code),
        access_code=await _unique_code(session, Event.access_code, generate_access_code),
        created_by=current_user.id,
    )
    session.add(event)
    await add_event_member(
        session, event_id=event.id, user_id=current_user.id, role=HOST
    )
    await session.commit()
    await session.refresh(event)

    await cache.delete(cache_keys.user_events_key(current_user.id))
    logger.info(f"Event {event.id} created by user {current_user.id}")
    return event


@router.get("/", response_model=List[EventPublicRead], summary="List my events")
async def list_events(
    session: SessionDep,
    cache: CacheDep,
    current_user: CurrentUser,
) -> list[dict[str, Any]]:
    return await list_user_events(cache, session, current_user.id)


@router.get(
    "/by-code/{code}",
    response_model=EventPublicRead,
    summary="Resolve an event by access code",
)
async def read_event_by_code(
    code: str,
    session: SessionDep,
    cache: CacheDep,
) -> dict[str, Any]:
    event_id = await find_event_id_by_code(cache, session, code)
    payload = await get_event_payload(cache, session, event_id) if event_id else None
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    return payload


@router.post(
    "/verify-code",
    response_model=AccessCodeResult,
    summary="Check a guest access code",
)
@limiter.limit(settings.ACCESS_CODE_RATE_LIMIT)
async def verify_access_code(
    request: Request,
    payload: AccessCodeVerify,
    session: SessionDep,
    cache: CacheDep,
) -> AccessCodeResult:
    event_id = await find_event_id_by_code(cache, session, payload.code)
    event = await session.get(Event, event_id) if event_id else None
    if event is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Invalid access code"
        )
    return AccessCodeResult(event_id=event.id, event_code=event.event_code, name=event.name)


@router.post("/stats", response_model=DashboardStats, summary="Stats for several events")
async def read_dashboard_stats(
    payload: DashboardStatsRequest,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
    current_user: CurrentUser,
) -> DashboardStats:
    """
    Per-event stats plus an aggregate over them.

    Without ``event_ids`` every event the caller owns or belongs to is counted.
    Requested events the caller cannot see are left out rather than rejected.
    """
    own_ids = [
        UUID(str(event["id"]))
        for event in await list_user_events(cache, session, current_user.id)
    ]
    if payload.event_ids is None:
        event_ids = own_ids
    else:
        allowed = set(own_ids)
        event_ids = []
        for event_id in dict.fromkeys(payload.event_ids):
            if event_id in allowed or await resolver.can_manage_event(event_id, identity):
                event_ids.append(event_id)

    stats_by_id = {
        event_id: await get_event_stats(cache, session, event_id)
        for event_id in event_ids
    }
    return DashboardStats(
        stats_by_id=stats_by_id, aggregate=aggregate_stats(stats_by_id.values())
    )


@router.get(
    "/{event_id}",
    response_model=EventReadWithRole,
    summary="Read event",
)
async def read_event(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> EventReadWithRole:
    event = await ensure_event_access(resolver, event_id, identity)
    payload = await get_event_payload(cache, session, event_id)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )

    role = await resolver.get_event_role(event, identity)
    can_manage = await resolver.can_manage(event, identity)
    return EventReadWithRole(
        event=EventPublicRead.model_validate(payload),
        access_code=event.access_code if can_manage else None,
        current_user_role=role.value,
        can_manage=can_manage,
    )


@router.patch("/{event_id}", response_model=EventRead, summary="Update event settings")
async def update_event(
    event_id: UUID,
    payload: EventUpdate,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> Event:
    event = await ensure_event_owner(resolver, event_id, identity)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(event, field, value)
    event.touch()
    session.add(event)
    await session.commit()
    await session.refresh(event)

    await cache.invalidate_event(
        event.id,
        None,
        cache_keys.event_code_key(event.access_code),
        *await audience_list_keys(session, event),
    )
    return event


@router.post(
    "/{event_id}/regenerate-code",
    response_model=AccessCodeRegenerated,
    summary="Issue a new guest access code",
)
async def regenerate_access_code(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> AccessCodeRegenerated:
    event = await ensure_event_owner(resolver, event_id, identity)
    old_code = event.access_code
    event.access_code = await _unique_code(session, Event.access_code, generate_access_code)
    event.touch()
    session.add(event)
    await session.commit()

    await cache.invalidate_event(
        event.id,
        event.created_by,
        cache_keys.event_code_key(old_code),
        cache_keys.event_code_key(event.access_code),
    )
    logger.info(f"Access code regenerated for event {event.id}")
    return AccessCodeRegenerated(event_id=event.id, access_code=event.access_code)


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete event",
)
async def delete_event(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    storage: StorageDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> None:
    event = await ensure_event_owner(resolver, event_id, identity)
    await delete_event_cascade(session, cache, storage, event)


@router.get("/{event_id}/stats", response_model=EventStats, summary="Photo statistics")
async def read_event_stats(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> EventStats:
    await ensure_event_access(resolver, event_id, identity)
    return await get_event_stats(cache, session, event_id)


@router.get(
    "/{event_id}/photos",
    response_model=List[PhotoRead],
    summary="List event photos",
)
async def read_event_photos(
    event_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> list[dict[str, Any]]:
    """Managers see pending photos too; everyone else sees approved ones only."""
    event = await ensure_event_access(resolver, event_id, identity)
    include_pending = await resolver.can_manage(event, identity)
    return await list_event_photos(
        cache, session, event_id, include_pending=include_pending
    )
