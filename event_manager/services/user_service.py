"""
Registration, login and profile workflows
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_manager.core.exceptions import (
    AccountInactiveError,
    AccountNotVerifiedError,
    AuthenticationError,
    DuplicateEmailError,
    ValidationError,
)
from event_manager.models import ROLE_ADMIN, ROLE_USER, EventLogType, User
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.user import MIN_PASSWORD_LENGTH, ProfileUpdate, RegistrationRequest
from event_manager.services.event_log_service import EventLogService
from event_manager.services.repositories import UserRepo
from event_manager.services.verification_service import EmailVerificationService
from event_manager.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

CLI_ROLES = {"USER": [ROLE_USER], "ADMIN": [ROLE_ADMIN]}


def _commit_user(db: Session, user: User) -> None:
    """Commit, translating a unique email violation into DuplicateEmailError"""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmailError(user.email)


class UserService:
    """Service for account lifecycle operations"""

    @staticmethod
    def register(
        db: Session,
        data: RegistrationRequest,
        meta: Optional[RequestMetadata] = None,
    ) -> Tuple[User, bool]:
        """
        Create an inactive, unverified account and mail its verification link.

        Returns the user and whether the verification email went out; a mail
        failure does not undo the registration.
        """
        email = data.email.strip().lower()
        if UserRepo.email_taken(db, email):
            raise DuplicateEmailError(email)

        user = User(
            email=email,
            password=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            roles=[ROLE_USER],
            is_active=False,
            is_email_verified=False,
        )
        db.add(user)
        _commit_user(db, user)
        db.refresh(user)
        logger.info(f"User {user.id} registered")

        EventLogService.log_safely(
            db,
            EventLogType.USER_REGISTERED,
            EventLogService.user_payload(user),
            user=user,
            meta=meta,
        )

        try:
            EmailVerificationService.send_verification_email(db, user)
            email_sent = True
        except Exception:
            db.rollback()
            logger.exception(f"Failed to send verification email to user {user.id}")
            email_sent = False

        return user, email_sent

    @staticmethod
    def authenticate(
        db: Session,
        email: str,
        password: str,
        meta: Optional[RequestMetadata] = None,
    ) -> User:
        """Check credentials; unverified accounts are refused before inactive ones"""
        user = UserRepo.get_by_email(db, email)
        if user is None or not verify_password(password, user.password):
            raise AuthenticationError()
        if not user.is_email_verified:
            raise AccountNotVerifiedError()
        if not user.is_active:
            raise AccountInactiveError()

        logger.info(f"User {user.id} logged in")
        EventLogService.log_safely(
            db,
            EventLogType.USER_LOGIN,
            EventLogService.user_payload(user),
            user=user,
            meta=meta,
        )
        return user

    @staticmethod
    def logout(db: Session, user: User, meta: Optional[RequestMetadata] = None) -> None:
        logger.info(f"User {user.id} logged out")
        EventLogService.log_safely(
            db,
            EventLogType.USER_LOGOUT,
            EventLogService.user_payload(user),
            user=user,
            meta=meta,
        )

    @staticmethod
    def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)
        if "email" in changes:
            if not changes["email"]:
                raise ValidationError("Email cannot be empty.", field="email")
            changes["email"] = changes["email"].strip().lower()
            if UserRepo.email_taken(db, changes["email"], exclude_id=user.id):
                raise DuplicateEmailError(changes["email"])

        for field, value in changes.items():
            setattr(user, field, value)

        _commit_user(db, user)
        db.refresh(user)
        logger.info(f"User {user.id} updated their profile")
        return user

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        first_name: str,
        last_name: str,
        password: str,
        role: str = "USER",
    ) -> User:
        """Create an active, verified account (administrative use)"""
        roles = CLI_ROLES.get(role.upper())
        if roles is None:
            raise ValidationError(f"Unknown role: {role}. Use USER or ADMIN.", field="role")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Your password should be at least {MIN_PASSWORD_LENGTH} characters",
                field="password",
            )

        email = email.strip().lower()
        if UserRepo.email_taken(db, email):
            raise DuplicateEmailError(email)

        user = User(
            email=email,
            password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            roles=roles,
            is_active=True,
            is_email_verified=True,
        )
        db.add(user)
        _commit_user(db, user)
        db.refresh(user)
        logger.info(f"User {user.id} created with roles {user.get_roles()}")
        return user
