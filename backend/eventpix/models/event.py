from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from eventpix.core.timeutils import utcnow


class Event(SQLModel, table=True):
    """Photo-sharing event owned by a host."""

    __tablename__ = "events"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    date: datetime = Field(nullable=False)
    location: Optional[str] = Field(default=None, max_length=255)
    # Short public code used in guest links
    event_code: str = Field(index=True, unique=True, max_length=16)
    # Shared secret for private events; stored upper-case
    access_code: str = Field(index=True, unique=True, max_length=50)
    created_by: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    is_public: bool = Field(default=False)
    allow_guest_uploads: bool = Field(default=True)
    require_approval: bool = Field(default=False)
    chat_enabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = utcnow()
