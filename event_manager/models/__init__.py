"""
Database models package
"""

from .user import User, ROLE_USER, ROLE_ADMIN
from .event import Event, EventStatus, event_participants
from .post import Post
from .comment import Comment
from .event_log import EventLog, EventLogType

__all__ = [
    "User",
    "ROLE_USER",
    "ROLE_ADMIN",
    "Event",
    "EventStatus",
    "event_participants",
    "Post",
    "Comment",
    "EventLog",
    "EventLogType",
]
