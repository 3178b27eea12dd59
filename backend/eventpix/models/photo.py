from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from eventpix.core.timeutils import utcnow


class Photo(SQLModel, table=True):
    """Uploaded photo. ``uploaded_by`` is null for guest uploads."""

    __tablename__ = "photos"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    event_id: UUID = Field(foreign_key="events.id", nullable=False, index=True)
    filename: str = Field(max_length=255)
    original_filename: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    file_size: int = Field(ge=0)
    # Local path, or "s3:<key>" for object storage
    file_path: str = Field(max_length=500)
    uploaded_by: Optional[UUID] = Field(
        default=None, foreign_key="users.id", nullable=True, index=True
    )
    guest_name: Optional[str] = Field(default=None, max_length=100)
    guest_email: Optional[str] = Field(default=None, max_length=255)
    is_approved: bool = Field(default=True, index=True)
    uploaded_at: datetime = Field(default_factory=utcnow, nullable=False)
