"""Cache TTLs and key naming.

Keep expiry values here so Redis mirrors, signed URLs and HTTP cache headers
do not drift apart.
"""

from __future__ import annotations

from uuid import UUID

# Signed URL lifetimes; mirrors expire slightly before the URL they hold
SIGNED_URL_TTL_SECONDS = 3600
SIGNED_URL_MIRROR_SECONDS = 3500
THUMB_URL_TTL_SECONDS = 600
THUMB_URL_MIRROR_SECONDS = 590
UPLOAD_URL_TTL_SECONDS = 900
DOWNLOAD_URL_TTL_SECONDS = 60

PHOTO_META_TTL_SECONDS = 60 * 60 * 24 * 7

EVENT_TIMELINE_TTL_SECONDS = 120
EVENT_BY_ID_TTL_SECONDS = 300
EVENT_BY_CODE_TTL_SECONDS = 300
EVENT_PHOTOS_TTL_SECONDS = 120
EVENT_STATS_TTL_SECONDS = 300
USER_EVENTS_LIST_TTL_SECONDS = 300

# Outlives every versioned artifact stored under it
EVENT_VERSION_TTL_SECONDS = 60 * 60 * 24 * 7


# Versioned artifact names
ARTIFACT_EVENT = "event"
ARTIFACT_PHOTOS = "photos"
ARTIFACT_PHOTOS_APPROVED = "photos:approved"
ARTIFACT_STATS = "stats"


def versioned_key(event_id: UUID | str, version: int, artifact: str) -> str:
    return f"{event_id}::{version}::{artifact}"


def event_version_key(event_id: UUID | str) -> str:
    return f"evt:{event_id}:version"


def event_timeline_key(event_id: UUID | str) -> str:
    return f"evt:{event_id}:timeline"


def event_code_key(access_code: str) -> str:
    return f"evt:code:{access_code.strip().upper()}"


def user_events_key(user_id: UUID | str) -> str:
    return f"user:{user_id}:events:list"


def photo_meta_key(photo_id: UUID | str) -> str:
    return f"photo:meta:{photo_id}"


def photo_url_key(photo_id: UUID | str) -> str:
    return f"photo:url:{photo_id}"


def photo_thumb_url_key(photo_id: UUID | str) -> str:
    return f"photo:thumb:url:{photo_id}"


def photo_keys(photo_id: UUID | str) -> list[str]:
    """All auxiliary keys held for a single photo."""
    return [
        photo_meta_key(photo_id),
        photo_url_key(photo_id),
        photo_thumb_url_key(photo_id),
    ]
