from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventpix.core.timeutils import UTCDateTime


class PhotoRead(BaseModel):
    id: UUID
    event_id: UUID
    filename: str
    original_filename: str
    mime_type: str
    file_size: int
    uploaded_by: Optional[UUID] = None
    guest_name: Optional[str] = None
    is_approved: bool
    uploaded_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class PhotoDetail(PhotoRead):
    url: str


class PresignRequest(BaseModel):
    event_id: UUID
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(max_length=100)
    file_size: int = Field(gt=0)


class PresignResponse(BaseModel):
    key: str
    upload_url: str
    expires_in: int


class FinalizeItem(BaseModel):
    key: str
    original_filename: str = Field(max_length=255)
    mime_type: str = Field(max_length=100)
    file_size: int = Field(ge=0)


class FinalizeRequest(BaseModel):
    event_id: UUID
    items: list[FinalizeItem] = Field(min_length=1)


class GuestFinalizeRequest(FinalizeRequest):
    guest_name: str = Field(min_length=1, max_length=100)
    guest_email: Optional[EmailStr] = None


class FinalizeResponse(BaseModel):
    count: int
    photo_ids: list[UUID]


class BulkApproveRequest(BaseModel):
    event_id: UUID
    photo_ids: list[UUID] = Field(min_length=1)


class BulkApproveResponse(BaseModel):
    approved: int


class BulkDownloadRequest(BaseModel):
    photo_ids: list[UUID] = Field(min_length=1, max_length=500)
