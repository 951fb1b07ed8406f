"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .post import *
from .user import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "PaginationParams",
    "RequestMetadata",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventDetail",
    "EventFilters",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "PostFilters",
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    "RegistrationRequest",
    "LoginRequest",
    "TokenResponse",
    "ResendVerificationRequest",
    "ProfileUpdate",
    "UserResponse",
    "EventLogResponse",
    "EventLogFilters",
]
