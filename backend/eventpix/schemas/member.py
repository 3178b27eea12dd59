from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from eventpix.core.timeutils import UTCDateTime

MemberRole = Literal["host", "organizer", "photographer", "customer"]


class EventMemberUpsert(BaseModel):
    email: EmailStr
    role: MemberRole


class EventMemberRead(BaseModel):
    event_id: UUID
    user_id: UUID
    role: str
    added_at: UTCDateTime
    email: EmailStr
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
