"""
EventLog model - append-only activity record
"""

from enum import Enum
from typing import Any, List

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from event_manager.core.db import Base
from event_manager.utils.clock import utcnow


class EventLogType(str, Enum):
    USER_REGISTERED = "user.registered"
    USER_LOGIN = "user.login"
    USER_LOGOUT = "user.logout"
    USER_VERIFIED = "user.verified"

    EVENT_CREATED = "event.created"
    EVENT_UPDATED = "event.updated"
    EVENT_DELETED = "event.deleted"
    EVENT_PARTICIPANT_ADDED = "event.participant.added"
    EVENT_PARTICIPANT_REMOVED = "event.participant.removed"

    POST_CREATED = "post.created"
    POST_UPDATED = "post.updated"
    POST_PUBLISHED = "post.published"
    POST_DELETED = "post.deleted"

    COMMENT_CREATED = "comment.created"
    COMMENT_UPDATED = "comment.updated"
    COMMENT_HIDDEN = "comment.hidden"
    COMMENT_DELETED = "comment.deleted"


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    payload = Column(JSON, nullable=False, default=dict)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    ip_address = Column(String(45))
    user_agent = Column(String(500))
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<EventLog {self.id} {self.event_type}>"

    @staticmethod
    def available_event_types() -> List[str]:
        return [event_type.value for event_type in EventLogType]

    def get_payload_data(self, key: str) -> Any:
        return (self.payload or {}).get(key)
