from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel

from eventpix.core.timeutils import utcnow


class EventMember(SQLModel, table=True):
    """Event membership with per-user role."""

    __tablename__ = "event_members"

    event_id: UUID = Field(foreign_key="events.id", primary_key=True, nullable=False)
    user_id: UUID = Field(foreign_key="users.id", primary_key=True, nullable=False)
    role: str = Field(default="customer", max_length=32)
    added_at: datetime = Field(default_factory=utcnow, nullable=False)
