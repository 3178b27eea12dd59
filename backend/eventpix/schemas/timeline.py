from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventpix.core.timeutils import UTCDateTime

ADJUST_STEP_MINUTES = 15


class TimelineEntryBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=255)
    time: UTCDateTime


class TimelineEntryCreate(TimelineEntryBase):
    event_id: UUID


class TimelineEntryUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=255)
    time: Optional[UTCDateTime] = None


class TimelineEntryRead(TimelineEntryBase):
    id: UUID
    event_id: UUID
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class TimelineAdjust(BaseModel):
    """Delay (+15) or bring forward (-15) by one step."""

    delta_minutes: int

    @field_validator("delta_minutes")
    @classmethod
    def one_step(cls, value: int) -> int:
        if abs(value) != ADJUST_STEP_MINUTES:
            raise ValueError(f"delta_minutes must be +/-{ADJUST_STEP_MINUTES}")
        return value
