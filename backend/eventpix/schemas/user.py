from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventpix.core.timeutils import UTCDateTime


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(default=None, max_length=100)
    password: str = Field(min_length=8, max_length=128)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserRead(BaseModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    is_active: bool
    is_super_admin: bool
    plan_name: str
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str
