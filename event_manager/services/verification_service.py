"""
Email verification token lifecycle
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from event_manager.core.config import settings
from event_manager.core.exceptions import AlreadyVerifiedError
from event_manager.models import EventLogType, User
from event_manager.services.event_log_service import EventLogService
from event_manager.services.mail_service import mail_service
from event_manager.services.repositories import UserRepo
from event_manager.utils.clock import utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class EmailVerificationService:
    """Issues, sends and consumes email verification tokens"""

    @staticmethod
    def generate_token(db: Session, user: User, now: Optional[datetime] = None) -> str:
        """
        Issue a fresh token for the user, replacing any outstanding one.

        The token is 32 random bytes, hex encoded, valid for
        VERIFICATION_TOKEN_TTL_HOURS.
        """
        if user.is_email_verified:
            raise AlreadyVerifiedError()

        token = secrets.token_hex(TOKEN_BYTES)
        expires_at = (now or utcnow()) + timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS)
        user.set_verification_token(token, expires_at)
        db.commit()
        return token

    @staticmethod
    def is_expired(user: User, now: Optional[datetime] = None) -> bool:
        return user.is_email_verification_token_expired(now)

    @staticmethod
    def verification_url(token: str) -> str:
        return f"{settings.BASE_URL.rstrip('/')}/auth/verify-email/{token}"

    @staticmethod
    def send_verification_email(db: Session, user: User) -> str:
        """Generate a token and mail the verification link; returns the token"""
        token = EmailVerificationService.generate_token(db, user)
        mail_service.send_verification_email(
            user,
            EmailVerificationService.verification_url(token),
            user.email_verification_token_expires_at,
        )
        logger.info(f"Verification email sent to user {user.id}")
        return token

    @staticmethod
    def resend(db: Session, user: User) -> str:
        if user.is_email_verified:
            raise AlreadyVerifiedError()
        return EmailVerificationService.send_verification_email(db, user)

    @staticmethod
    def consume(db: Session, token: str, now: Optional[datetime] = None) -> bool:
        """
        Verify the account owning the token.

        Returns False for an unknown or expired token, True when the account
        is (or already was) verified.
        """
        if not token:
            return False

        user = UserRepo.get_by_verification_token(db, token)
        if user is None:
            return False
        if user.is_email_verification_token_expired(now):
            return False
        if user.is_email_verified:
            return True

        updated = db.query(User).filter(
            User.id == user.id,
            User.email_verification_token == token,
            User.is_email_verified.is_(False),
        ).update(
            {
                User.is_email_verified: True,
                User.is_active: True,
                User.email_verification_token: None,
                User.email_verification_token_expires_at: None,
            },
            synchronize_session=False,
        )
        db.commit()
        db.refresh(user)

        if updated == 0:
            # consumed concurrently by another request
            return user.is_email_verified

        logger.info(f"User {user.id} verified their email address")
        EventLogService.log_safely(
            db,
            EventLogType.USER_VERIFIED,
            EventLogService.user_payload(user),
            user=user,
        )

        try:
            mail_service.send_welcome_email(user)
        except Exception:
            logger.exception(f"Failed to send welcome email to user {user.id}")

        return True
