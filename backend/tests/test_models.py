"""Tests for model defaults."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from eventpix.models import Photo, TimelineEntry, User


def test_default_timestamps_are_utc_aware():
    user = User(email="a@example.com", name="a", hashed_password="x")
    assert user.created_at.utcoffset() == timedelta(0)

    before = user.updated_at
    user.touch()
    assert user.updated_at.utcoffset() == timedelta(0)
    assert user.updated_at >= before


@pytest.mark.asyncio
async def test_rows_with_default_timestamps_commit(db_session, host, make_event):
    event = await make_event(host)
    entry = TimelineEntry(
        event_id=event.id,
        time=datetime(2026, 6, 1, 20, 0, tzinfo=timezone.utc),
        title="Speech",
    )
    photo = Photo(
        event_id=event.id,
        filename="a.jpg",
        original_filename="a.jpg",
        mime_type="image/jpeg",
        file_size=10,
        file_path="s3:a.jpg",
    )
    assert photo.uploaded_at.utcoffset() == timedelta(0)
    db_session.add_all([entry, photo])
    await db_session.commit()

    users = (await db_session.exec(select(User))).all()
    assert [u.email for u in users] == ["host@example.com"]
    saved = (await db_session.exec(select(TimelineEntry))).one()
    assert saved.title == "Speech"
