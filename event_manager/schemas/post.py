"""
Post and comment Pydantic schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("This value should not be blank.")
    return value

def _title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = _not_blank(value).strip()
    if len(value) < 3:
        raise ValueError("Post title must be at least 3 characters long.")
    return value

class PostCreate(BaseModel):
    """Schema for creating a post"""
    title: str = Field(..., min_length=3, max_length=255)
    content: str
    tags: List[str] = []
    is_published: bool = False
    featured_image: Optional[str] = Field(None, max_length=255)

    @field_validator("title")
    @classmethod
    def title_length(cls, value: str) -> str:
        return _title(value)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)

class PostUpdate(BaseModel):
    """Schema for editing a post; only provided fields are applied"""
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    featured_image: Optional[str] = Field(None, max_length=255)

    @field_validator("title")
    @classmethod
    def title_length(cls, value: Optional[str]) -> Optional[str]:
        return _title(value)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _not_blank(value)

class PostResponse(BaseModel):
    """Post response schema"""
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    content: str
    tags: List[str]
    author_id: int
    is_published: bool
    featured_image: Optional[str] = None
    comment_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class PostFilters(BaseModel):
    """Optional post listing criteria"""
    search: Optional[str] = None
    tags: Optional[List[str]] = None
    author_id: Optional[int] = None
    published_only: bool = True
    order_by: str = "created_at"
    order: str = "desc"
    limit: Optional[int] = None
    offset: Optional[int] = None

class CommentCreate(BaseModel):
    """Schema for adding a comment or a reply"""
    content: str
    parent_id: Optional[int] = None

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)

class CommentUpdate(BaseModel):
    """Schema for editing a comment"""
    content: str

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        return _not_blank(value)

class CommentResponse(BaseModel):
    """Comment response schema"""
    id: int
    content: str
    post_id: int
    author_id: int
    parent_id: Optional[int] = None
    is_hidden: bool
    is_reply: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
