"""
Event model
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship

from event_manager.core.db import Base
from event_manager.utils.clock import utcnow


class EventStatus(str, Enum):
    PLANNED = "planned"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Pure membership table; the composite primary key rules out duplicate participants
event_participants = Table(
    "event_participants",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default=EventStatus.PLANNED.value, index=True)
    location = Column(String(255))
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime)
    max_participants = Column(Integer, nullable=False, default=0)
    is_public = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    created_by = relationship("User", foreign_keys=[created_by_id])
    participants = relationship("User", secondary=event_participants, order_by="User.id")

    def __init__(self, **kwargs):
        kwargs.setdefault("status", EventStatus.PLANNED.value)
        kwargs.setdefault("max_participants", 0)
        kwargs.setdefault("is_public", True)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.title!r} {self.status}>"

    @staticmethod
    def available_statuses() -> List[str]:
        return [status.value for status in EventStatus]

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def is_participant(self, user) -> bool:
        if user is None:
            return False
        return any(p is user or (p.id is not None and p.id == user.id) for p in self.participants)

    def add_participant(self, user) -> None:
        """Add a participant; adding an existing member is a no-op"""
        if not self.is_participant(user):
            self.participants.append(user)

    def remove_participant(self, user) -> None:
        self.participants = [
            p for p in self.participants
            if not (p is user or (p.id is not None and p.id == user.id))
        ]

    def can_accept_more_participants(self) -> bool:
        return self.max_participants == 0 or self.participant_count < self.max_participants

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        return self.start_date > (now or utcnow())

    def is_ongoing(self, now: Optional[datetime] = None) -> bool:
        if self.end_date is None:
            return False
        now = now or utcnow()
        return self.start_date <= now <= self.end_date

    def is_past(self, now: Optional[datetime] = None) -> bool:
        if self.end_date is None:
            return False
        return self.end_date < (now or utcnow())
