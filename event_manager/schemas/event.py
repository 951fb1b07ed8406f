"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from event_manager.models.event import EventStatus
from event_manager.utils.clock import to_naive_utc

class EventCreate(BaseModel):
    """Schema for creating an event"""
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    status: EventStatus = EventStatus.PLANNED
    start_date: datetime
    end_date: Optional[datetime] = None
    max_participants: int = Field(0, ge=0)
    is_public: bool = True

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Event title must be at least 3 characters long.")
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date cannot be before the start date.")
        return self

class EventUpdate(BaseModel):
    """Schema for editing an event; only provided fields are applied"""
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    status: Optional[EventStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=0)
    is_public: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if len(value) < 3:
            raise ValueError("Event title must be at least 3 characters long.")
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

class EventResponse(BaseModel):
    """Basic event response"""
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: str
    start_date: datetime
    end_date: Optional[datetime] = None
    max_participants: int
    is_public: bool
    created_by_id: int
    participant_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class EventDetail(EventResponse):
    """Detailed event response with the viewer's permissions"""
    can_register: bool
    is_registered: bool
    can_edit: bool
    can_accept_more_participants: bool

class EventFilters(BaseModel):
    """Optional listing criteria; every provided criterion must match"""
    status: Optional[EventStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    search: Optional[str] = None
    order_by: str = "start_date"
    order: str = "asc"
    limit: Optional[int] = None
    offset: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)
