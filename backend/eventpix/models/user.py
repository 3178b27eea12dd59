from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from eventpix.core.timeutils import utcnow


class User(SQLModel, table=True):
    """Host or member account."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: str = Field(index=True, unique=True, max_length=255)
    name: Optional[str] = Field(default=None, max_length=100)
    hashed_password: str = Field(max_length=255)
    is_active: bool = Field(default=True)
    # Platform super-admin
    is_super_admin: bool = Field(default=False, nullable=False)
    plan_name: str = Field(default="free", max_length=50)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = utcnow()
