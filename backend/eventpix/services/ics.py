"""Minimal iCalendar (RFC 5545) export for timeline entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from eventpix.core.timeutils import as_utc


@dataclass
class IcsEvent:
    uid: str
    start: datetime
    summary: str
    end: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None


def _ics_date(value: datetime) -> str:
    return as_utc(value).strftime("%Y%m%dT%H%M%SZ")


def _escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(";", "\\;")
        .replace(",", "\\,")
    )


def build_calendar(name: str, events: Iterable[IcsEvent]) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//EventPix//Timeline//EN",
        f"X-WR-CALNAME:{_escape(name)}",
    ]
    for ev in events:
        end = ev.end or ev.start + timedelta(hours=1)
        lines += [
            "BEGIN:VEVENT",
            f"UID:{ev.uid}",
            f"DTSTART:{_ics_date(ev.start)}",
            f"DTEND:{_ics_date(end)}",
            f"SUMMARY:{_escape(ev.summary)}",
        ]
        if ev.description:
            lines.append(f"DESCRIPTION:{_escape(ev.description)}")
        if ev.location:
            lines.append(f"LOCATION:{_escape(ev.location)}")
        if ev.url:
            lines.append(f"URL:{_escape(ev.url)}")
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)
