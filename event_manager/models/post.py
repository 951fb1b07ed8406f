"""
Post model
"""

import re
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship, validates

from event_manager.core.db import Base
from event_manager.utils.clock import utcnow

EXCERPT_LENGTH = 200

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")
_MARKUP = re.compile(r"<[^>]*>")


def slugify(title: str) -> str:
    """Lowercase the title and collapse every non-alphanumeric run into one hyphen"""
    slug = _SLUG_SEPARATORS.sub("-", title.lower()).strip("-")
    return slug or "post"


def make_excerpt(content: str) -> str:
    text = _MARKUP.sub("", content)
    if len(text) > EXCERPT_LENGTH:
        return text[:EXCERPT_LENGTH] + "..."
    return text


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    cleaned = [tag.strip() for tag in (tags or []) if tag and tag.strip()]
    return list(dict.fromkeys(cleaned))


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    excerpt = Column(Text)
    tags = Column(JSON, nullable=False, default=list)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_published = Column(Boolean, nullable=False, default=False)
    featured_image = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    author = relationship("User")
    comments = relationship(
        "Comment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at, Comment.id",
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("tags", [])
        kwargs.setdefault("is_published", False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Post {self.id} {self.slug}>"

    @validates("title")
    def _derive_slug(self, key, title):
        self.slug = slugify(title)
        return title

    @validates("content")
    def _derive_excerpt(self, key, content):
        self.excerpt = make_excerpt(content)
        return content

    @validates("tags")
    def _clean_tags(self, key, tags):
        return normalize_tags(tags)

    def add_tag(self, tag: str) -> None:
        tag = tag.strip()
        if tag and tag not in self.tags:
            # reassign so the JSON column is flagged dirty
            self.tags = [*self.tags, tag]

    def remove_tag(self, tag: str) -> None:
        self.tags = [t for t in self.tags if t != tag]

    @property
    def tags_as_string(self) -> str:
        return ", ".join(self.tags or [])

    @property
    def published_comments(self) -> list:
        return [comment for comment in self.comments if not comment.is_hidden]

    @property
    def comment_count(self) -> int:
        return len(self.published_comments)
