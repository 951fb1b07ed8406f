"""
User model
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON

from event_manager.core.db import Base
from event_manager.utils.clock import utcnow

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(180), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    roles = Column(JSON, nullable=False, default=list)
    first_name = Column(String(255))
    last_name = Column(String(255))
    bio = Column(Text)
    avatar = Column(String(255))
    is_active = Column(Boolean, nullable=False, default=False)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(255), index=True)
    email_verification_token_expires_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __init__(self, **kwargs):
        kwargs.setdefault("roles", [ROLE_USER])
        kwargs.setdefault("is_active", False)
        kwargs.setdefault("is_email_verified", False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"

    def get_roles(self) -> List[str]:
        """Stored roles, always including the base user role"""
        roles = list(self.roles or [])
        roles.append(ROLE_USER)
        return list(dict.fromkeys(roles))

    def set_roles(self, roles: List[str]) -> None:
        self.roles = list(dict.fromkeys(roles))

    def has_role(self, role: str) -> bool:
        return role in self.get_roles()

    @property
    def is_admin(self) -> bool:
        return self.has_role(ROLE_ADMIN)

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email

    def set_verification_token(self, token: str, expires_at: datetime) -> None:
        # token and expiry are always set together
        self.email_verification_token = token
        self.email_verification_token_expires_at = expires_at

    def clear_verification_token(self) -> None:
        self.email_verification_token = None
        self.email_verification_token_expires_at = None

    def is_email_verification_token_expired(self, now: Optional[datetime] = None) -> bool:
        """A missing token or expiry counts as expired"""
        if not self.email_verification_token or not self.email_verification_token_expires_at:
            return True
        return self.email_verification_token_expires_at < (now or utcnow())
