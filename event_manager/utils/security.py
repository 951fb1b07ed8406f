"""
Security utilities and authentication
"""

import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from event_manager.core.config import settings
from event_manager.core.db import get_db
from event_manager.core.exceptions import AuthenticationError, ForbiddenError
from event_manager.models import User
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.user import TokenResponse

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

# Bearer token extractor
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> TokenResponse:
    """Issue a signed bearer token whose subject is the user id"""
    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return TokenResponse(access_token=token, expires_at=expires_at.replace(tzinfo=None))


def decode_access_token(token: str) -> int:
    """Validate a bearer token and return the user id it was issued for"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {str(e)}")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Invalid token subject")


def _user_from_credentials(db: Session, credentials: HTTPAuthorizationCredentials) -> User:
    user_id = decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid token")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Dependency that requires a logged-in user"""
    if credentials is None:
        raise AuthenticationError("Missing authorization header")
    return _user_from_credentials(db, credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Dependency that resolves the user when a valid token is present"""
    if credentials is None:
        return None
    try:
        return _user_from_credentials(db, credentials)
    except AuthenticationError:
        return None


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Administrator access required.")
    return user


def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request"""
    # Reverse proxy headers first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else None


def request_metadata(request: Request) -> RequestMetadata:
    """Dependency capturing the client details recorded with activity logs"""
    return RequestMetadata(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
