"""Access decisions for events and everything hanging off them.

Decisions fail closed: a missing event or a failing role lookup yields
"no access" rather than an error. The resolver reads the database directly
and never consults the cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix.core.config import settings
from eventpix.models import Event, EventMember, User

logger = logging.getLogger(__name__)

# Role tags stored on EventMember rows
HOST = "host"
ORGANIZER = "organizer"
PHOTOGRAPHER = "photographer"
CUSTOMER = "customer"

MEMBER_ROLES = frozenset({HOST, ORGANIZER, PHOTOGRAPHER, CUSTOMER})
EVENT_MANAGER_ROLES = frozenset({HOST, ORGANIZER})
TIMELINE_MANAGER_ROLES = frozenset({HOST, ORGANIZER})

RoleLookup = Callable[[UUID, UUID], Awaitable[Optional[str]]]


class EventRole(str, Enum):
    """Caller's relationship to an event."""

    OWNER = "owner"
    ELEVATED = "elevated"
    MEMBER = "member"
    GUEST_WITH_CODE = "guest_with_code"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class Identity:
    """Who is asking: an authenticated user, an access-code holder, or both."""

    user_id: Optional[UUID] = None
    access_code: Optional[str] = None
    is_super_admin: bool = False

    @classmethod
    def from_user(cls, user: Optional[User], access_code: Optional[str] = None) -> "Identity":
        return cls(
            user_id=user.id if user else None,
            access_code=normalize_access_code(access_code),
            is_super_admin=is_super_admin(user),
        )


def is_super_admin(user: Optional[User]) -> bool:
    if user is None:
        return False
    return user.is_super_admin or user.email.lower() in settings.super_admin_emails


def normalize_access_code(code: Optional[str]) -> Optional[str]:
    """Trim and upper-case a code. Blank codes become None."""
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


def access_codes_match(provided: Optional[str], expected: Optional[str]) -> bool:
    provided = normalize_access_code(provided)
    expected = normalize_access_code(expected)
    return provided is not None and expected is not None and provided == expected


def make_db_role_lookup(session: AsyncSession) -> RoleLookup:
    async def lookup(event_id: UUID, user_id: UUID) -> Optional[str]:
        membership = (
            await session.exec(
                select(EventMember).where(
                    EventMember.event_id == event_id,
                    EventMember.user_id == user_id,
                )
            )
        ).one_or_none()
        return membership.role if membership else None

    return lookup


class AccessResolver:
    def __init__(self, session: AsyncSession, role_lookup: Optional[RoleLookup] = None):
        self.session = session
        self._role_lookup = role_lookup or make_db_role_lookup(session)

    async def get_event(self, event_id: UUID) -> Optional[Event]:
        return await self.session.get(Event, event_id)

    async def lookup_role(self, event_id: UUID, user_id: Optional[UUID]) -> Optional[str]:
        """Member role tag, or None. Lookup failures count as no role."""
        if user_id is None:
            return None
        try:
            role = await self._role_lookup(event_id, user_id)
        except Exception:
            logger.exception(f"Role lookup failed for event {event_id}, user {user_id}")
            return None
        return role if role in MEMBER_ROLES else None

    async def can_access(self, event: Optional[Event], identity: Identity) -> bool:
        if event is None:
            return False
        if event.is_public:
            return True
        if identity.user_id is not None and identity.user_id == event.created_by:
            return True
        if access_codes_match(identity.access_code, event.access_code):
            return True
        return await self.lookup_role(event.id, identity.user_id) is not None

    async def can_access_event(self, event_id: UUID, identity: Identity) -> bool:
        return await self.can_access(await self.get_event(event_id), identity)

    async def can_manage(self, event: Optional[Event], identity: Identity) -> bool:
        if event is None:
            return False
        if identity.is_super_admin:
            return True
        if identity.user_id is not None and identity.user_id == event.created_by:
            return True
        return await self.lookup_role(event.id, identity.user_id) in EVENT_MANAGER_ROLES

    async def can_manage_event(self, event_id: UUID, identity: Identity) -> bool:
        return await self.can_manage(await self.get_event(event_id), identity)

    async def can_manage_timeline(self, event_id: UUID, identity: Identity) -> bool:
        event = await self.get_event(event_id)
        if event is None:
            return False
        if identity.is_super_admin:
            return True
        if identity.user_id is not None and identity.user_id == event.created_by:
            return True
        return await self.lookup_role(event.id, identity.user_id) in TIMELINE_MANAGER_ROLES

    async def get_event_role(self, event: Event, identity: Identity) -> EventRole:
        if identity.user_id is not None and identity.user_id == event.created_by:
            return EventRole.OWNER
        role = await self.lookup_role(event.id, identity.user_id)
        if role in EVENT_MANAGER_ROLES:
            return EventRole.ELEVATED
        if role is not None:
            return EventRole.MEMBER
        if access_codes_match(identity.access_code, event.access_code):
            return EventRole.GUEST_WITH_CODE
        return EventRole.ANONYMOUS

    async def can_upload(self, event: Event, identity: Identity) -> bool:
        """Members upload any time; everyone else needs guest uploads and access."""
        role = await self.get_event_role(event, identity)
        if role in (EventRole.OWNER, EventRole.ELEVATED, EventRole.MEMBER):
            return True
        return event.allow_guest_uploads and await self.can_access(event, identity)


async def ensure_event_access(
    resolver: AccessResolver,
    event_id: UUID,
    identity: Identity,
) -> Event:
    event = await resolver.get_event(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    if not await resolver.can_access(event, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Access to event denied"
        )
    return event


async def ensure_event_manager(
    resolver: AccessResolver,
    event_id: UUID,
    identity: Identity,
) -> Event:
    event = await resolver.get_event(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    if not await resolver.can_manage(event, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event host or organizers can do this",
        )
    return event


async def ensure_event_owner(
    resolver: AccessResolver,
    event_id: UUID,
    identity: Identity,
) -> Event:
    """Settings changes and deletion are reserved to the creator and admins."""
    event = await resolver.get_event(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    if not identity.is_super_admin and identity.user_id != event.created_by:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event owner can do this",
        )
    return event


async def ensure_timeline_manager(
    resolver: AccessResolver,
    event_id: UUID,
    identity: Identity,
) -> None:
    if not await resolver.get_event(event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    if not await resolver.can_manage_timeline(event_id, identity):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to manage the timeline",
        )


async def add_event_member(
    session: AsyncSession,
    *,
    event_id: UUID,
    user_id: UUID,
    role: str = CUSTOMER,
) -> EventMember:
    membership = await session.get(EventMember, (event_id, user_id))
    if membership:
        membership.role = role
    else:
        membership = EventMember(event_id=event_id, user_id=user_id, role=role)
    session.add(membership)
    return membership
