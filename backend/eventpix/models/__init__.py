from .event import Event
from .event_member import EventMember
from .photo import Photo
from .timeline_entry import TimelineEntry
from .user import User

__all__ = [
    "Event",
    "EventMember",
    "Photo",
    "TimelineEntry",
    "User",
]
