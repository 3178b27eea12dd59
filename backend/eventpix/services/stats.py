"""Event photo statistics.

Stats are derived two ways: a full recount from the database, and small
in-place patches applied to the cached value after single known-shape
mutations (insert, approve, delete). Both go through ``build_stats`` so the
pending count is always ``total - approved``. A lost patch under concurrent
writers is tolerated; the next recount after the TTL heals it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from eventpix.models import Photo
from eventpix.schemas.stats import EventStats
from eventpix.services.versioned_cache import VersionedCache

logger = logging.getLogger(__name__)

StatsPatch = Callable[[EventStats], EventStats]


def build_stats(
    total: int,
    approved: int,
    last_upload_at: Optional[datetime] = None,
) -> EventStats:
    total = max(0, total)
    approved = max(0, min(approved, total))
    return EventStats(
        total_photos=total,
        approved_photos=approved,
        pending_approvals=max(0, total - approved),
        last_upload_at=last_upload_at,
    )


async def compute_event_stats(session: AsyncSession, event_id: UUID) -> EventStats:
    """Recount stats from the photos table."""
    approved_case = case((Photo.is_approved == True, 1), else_=0)  # noqa: E712
    statement = select(
        func.count(Photo.id),
        func.coalesce(func.sum(approved_case), 0),
        func.max(Photo.uploaded_at),
    ).where(Photo.event_id == event_id)
    total, approved, last_upload_at = (await session.exec(statement)).one()
    return build_stats(int(total or 0), int(approved or 0), last_upload_at)


def patch_stats_for_insert(
    stats: EventStats,
    approved_count: int,
    unapproved_count: int,
    uploaded_at: Optional[datetime] = None,
) -> EventStats:
    last = stats.last_upload_at
    if uploaded_at is not None and (last is None or uploaded_at > last):
        last = uploaded_at
    return build_stats(
        stats.total_photos + approved_count + unapproved_count,
        stats.approved_photos + approved_count,
        last,
    )


def patch_stats_for_approve(stats: EventStats, count: int = 1) -> EventStats:
    """``count`` must only include photos that were pending before."""
    return build_stats(
        stats.total_photos,
        stats.approved_photos + count,
        stats.last_upload_at,
    )


def patch_stats_for_delete(stats: EventStats, was_approved: bool) -> EventStats:
    return build_stats(
        stats.total_photos - 1,
        stats.approved_photos - (1 if was_approved else 0),
        stats.last_upload_at,
    )


def aggregate_stats(stats: Iterable[EventStats]) -> EventStats:
    """Sum counters across events; the latest upload wins."""
    total = approved = 0
    last_upload_at = None
    for item in stats:
        total += item.total_photos
        approved += item.approved_photos
        if item.last_upload_at and (
            last_upload_at is None or item.last_upload_at > last_upload_at
        ):
            last_upload_at = item.last_upload_at
    return build_stats(total, approved, last_upload_at)


async def get_event_stats(
    cache: VersionedCache,
    session: AsyncSession,
    event_id: UUID,
) -> EventStats:
    cached = await cache.get_stats_cached(event_id)
    if cached is not None:
        return cached
    stats = await compute_event_stats(session, event_id)
    await cache.set_stats_cached(event_id, stats)
    return stats


async def commit_photo_mutation(
    cache: VersionedCache,
    event_id: UUID,
    snapshot: Optional[EventStats] = None,
    patch: Optional[StatsPatch] = None,
) -> int:
    """
    Invalidate an event's versioned artifacts after a photo write.

    ``snapshot`` must be read with ``cache.get_stats_cached`` before the
    write is committed: a recount cached after the commit already includes
    the write. The patched snapshot is written under the new version so the
    next stats read skips the recount; without a snapshot the next read
    recomputes.
    """
    version = await cache.bump_version(event_id)
    if snapshot is not None and patch is not None:
        patched = patch(snapshot)
        await cache.set_stats_cached(event_id, patched)
        logger.debug(
            f"Patched stats for event {event_id} at version {version}: "
            f"{patched.total_photos} total, {patched.pending_approvals} pending"
        )
    return version
