from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from eventpix.api.deps import CacheDep, IdentityDep, ResolverDep
from eventpix.core import cache_keys
from eventpix.db import SessionDep
from eventpix.models import EventMember, User
from eventpix.schemas import EventMemberRead, EventMemberUpsert
from eventpix.services.permissions import HOST, add_event_member, ensure_event_manager
from eventpix.services.users import get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter()


def _member_read(membership: EventMember, user: User) -> EventMemberRead:
    return EventMemberRead(
        event_id=membership.event_id,
        user_id=membership.user_id,
        role=membership.role,
        added_at=membership.added_at,
        email=user.email,
        name=user.name,
    )


@router.get(
    "/{event_id}/members",
    response_model=List[EventMemberRead],
    summary="List event members",
)
async def list_members(
    event_id: UUID,
    session: SessionDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> List[EventMemberRead]:
    await ensure_event_manager(resolver, event_id, identity)
    statement = (
        select(EventMember, User)
        .join(User, EventMember.user_id == User.id)
        .where(EventMember.event_id == event_id)
        .order_by(EventMember.added_at)
    )
    rows = (await session.exec(statement)).all()
    return [_member_read(membership, user) for membership, user in rows]


@router.post(
    "/{event_id}/members",
    response_model=EventMemberRead,
    summary="Add a member or change their role",
)
async def upsert_member(
    event_id: UUID,
    payload: EventMemberUpsert,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> EventMemberRead:
    event = await ensure_event_manager(resolver, event_id, identity)
    user = await get_user_by_email(session, payload.email)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )
    if user.id == event.created_by and payload.role != HOST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The event creator always keeps the host role",
        )

    membership = await add_event_member(
        session, event_id=event.id, user_id=user.id, role=payload.role
    )
    await session.commit()
    await session.refresh(membership)

    await cache.delete(cache_keys.user_events_key(user.id))
    logger.info(f"User {user.id} set to {payload.role} on event {event.id}")
    return _member_read(membership, user)


@router.delete(
    "/{event_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member",
)
async def remove_member(
    event_id: UUID,
    user_id: UUID,
    session: SessionDep,
    cache: CacheDep,
    resolver: ResolverDep,
    identity: IdentityDep,
) -> None:
    event = await ensure_event_manager(resolver, event_id, identity)
    if user_id == event.created_by:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The event creator cannot be removed",
        )
    membership = await session.get(EventMember, (event_id, user_id))
    if not membership:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Member not found"
        )
    await session.delete(membership)
    await session.commit()
    await cache.delete(cache_keys.user_events_key(user_id))
