from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from eventpix.core.timeutils import UTCDateTime


class EventStats(BaseModel):
    """Derived photo counters for an event."""

    total_photos: int = Field(default=0, ge=0)
    approved_photos: int = Field(default=0, ge=0)
    pending_approvals: int = Field(default=0, ge=0)
    last_upload_at: Optional[UTCDateTime] = None


class DashboardStatsRequest(BaseModel):
    """Omitting ``event_ids`` covers every event the caller belongs to."""

    event_ids: Optional[list[UUID]] = Field(default=None, max_length=200)


class DashboardStats(BaseModel):
    stats_by_id: dict[UUID, EventStats]
    aggregate: EventStats
