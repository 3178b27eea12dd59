from .admin import OrphanReport, StorageDeleteRequest, StorageDeleteResult
from .event import (
    AccessCodeRegenerated,
    AccessCodeResult,
    AccessCodeVerify,
    EventCreate,
    EventPublicRead,
    EventRead,
    EventReadWithRole,
    EventUpdate,
)
from .member import EventMemberRead, EventMemberUpsert
from .photo import (
    BulkApproveRequest,
    BulkApproveResponse,
    BulkDownloadRequest,
    FinalizeItem,
    FinalizeRequest,
    FinalizeResponse,
    GuestFinalizeRequest,
    PhotoDetail,
    PhotoRead,
    PresignRequest,
    PresignResponse,
)
from .stats import DashboardStats, DashboardStatsRequest, EventStats
from .timeline import (
    TimelineAdjust,
    TimelineEntryCreate,
    TimelineEntryRead,
    TimelineEntryUpdate,
)
from .user import RefreshTokenRequest, TokenPair, UserCreate, UserLogin, UserRead

__all__ = [
    "AccessCodeRegenerated",
    "AccessCodeResult",
    "AccessCodeVerify",
    "BulkApproveRequest",
    "BulkApproveResponse",
    "BulkDownloadRequest",
    "DashboardStats",
    "DashboardStatsRequest",
    "EventCreate",
    "EventMemberRead",
    "EventMemberUpsert",
    "EventPublicRead",
    "EventRead",
    "EventReadWithRole",
    "EventStats",
    "EventUpdate",
    "FinalizeItem",
    "FinalizeRequest",
    "FinalizeResponse",
    "GuestFinalizeRequest",
    "OrphanReport",
    "PhotoDetail",
    "PhotoRead",
    "PresignRequest",
    "PresignResponse",
    "RefreshTokenRequest",
    "StorageDeleteRequest",
    "StorageDeleteResult",
    "TimelineAdjust",
    "TimelineEntryCreate",
    "TimelineEntryRead",
    "TimelineEntryUpdate",
    "TokenPair",
    "UserCreate",
    "UserLogin",
    "UserRead",
]
