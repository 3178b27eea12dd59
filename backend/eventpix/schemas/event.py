from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from eventpix.core.timeutils import UTCDateTime


class EventBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    date: UTCDateTime
    location: Optional[str] = Field(default=None, max_length=255)
    is_public: bool = False
    allow_guest_uploads: bool = True
    require_approval: bool = False
    chat_enabled: bool = False


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    date: Optional[UTCDateTime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    is_public: Optional[bool] = None
    allow_guest_uploads: Optional[bool] = None
    require_approval: Optional[bool] = None
    chat_enabled: Optional[bool] = None


class EventPublicRead(EventBase):
    """Event as shown to guests; never carries the access code."""

    id: UUID
    event_code: str
    created_by: UUID
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class EventRead(EventPublicRead):
    access_code: str


class EventReadWithRole(BaseModel):
    event: EventPublicRead
    access_code: Optional[str] = None
    current_user_role: str
    can_manage: bool = False


class AccessCodeVerify(BaseModel):
    code: str = Field(min_length=1, max_length=50)


class AccessCodeResult(BaseModel):
    event_id: UUID
    event_code: str
    name: str


class AccessCodeRegenerated(BaseModel):
    event_id: UUID
    access_code: str
