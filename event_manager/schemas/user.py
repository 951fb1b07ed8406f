"""
User, authentication and activity-log Pydantic schemas
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from event_manager.utils.clock import to_naive_utc

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 4096

class RegistrationRequest(BaseModel):
    """Sign-up form"""
    email: EmailStr = Field(..., max_length=180)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH)
    password_confirm: str
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    agree_terms: bool = False

    @model_validator(mode="after")
    def check_form(self):
        if self.password != self.password_confirm:
            raise ValueError("The password fields must match.")
        if not self.agree_terms:
            raise ValueError("You should agree to our terms.")
        return self

class LoginRequest(BaseModel):
    """Login credentials"""
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    """Issued bearer token"""
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime

class ResendVerificationRequest(BaseModel):
    """Request a new verification email"""
    email: EmailStr

class ProfileUpdate(BaseModel):
    """Schema for editing the current user's profile"""
    email: Optional[EmailStr] = Field(None, max_length=180)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = None
    avatar: Optional[str] = Field(None, max_length=255)

class UserResponse(BaseModel):
    """Public view of a user"""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    roles: List[str]
    is_active: bool
    is_email_verified: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            bio=user.bio,
            avatar=user.avatar,
            roles=user.get_roles(),
            is_active=user.is_active,
            is_email_verified=user.is_email_verified,
            created_at=user.created_at,
        )

class EventLogResponse(BaseModel):
    """Activity log entry"""
    id: int
    event_type: str
    payload: Dict[str, Any]
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class EventLogFilters(BaseModel):
    """Optional activity log listing criteria"""
    event_type: Optional[str] = None
    user_id: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)
