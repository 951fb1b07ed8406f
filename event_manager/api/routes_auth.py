"""
Authentication API routes - registration, email verification, login
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from event_manager.core.db import get_db
from event_manager.core.exceptions import MailTransportError
from event_manager.models import User
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.user import LoginRequest, RegistrationRequest, ResendVerificationRequest, UserResponse
from event_manager.services.repositories import UserRepo
from event_manager.services.user_service import UserService
from event_manager.services.verification_service import EmailVerificationService
from event_manager.utils.responses import error_response, rate_limit_error, success_response
from event_manager.utils.security import (
    create_access_token,
    get_client_ip,
    get_current_user,
    rate_limit_check,
    request_metadata,
)

router = APIRouter()

RESEND_MESSAGE = "If an account with that email exists and is not yet verified, a verification email has been sent."

def _check_rate_limit(request: Request):
    if not rate_limit_check(get_client_ip(request)):
        rate_limit_error()

@router.post("/register", status_code=201)
def register(
    data: RegistrationRequest,
    request: Request,
    db: Session = Depends(get_db),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Create an account and send its verification email"""
    _check_rate_limit(request)

    user, email_sent = UserService.register(db, data, meta)

    if email_sent:
        message = "Registration successful. Please check your email to verify your account."
    else:
        message = "Registration successful, but we couldn't send the verification email. Please contact support."

    return success_response(
        message=message,
        data={
            "user": UserResponse.from_user(user),
            "verification_email_sent": email_sent,
        },
        status_code=201,
    )

@router.get("/verify-email/{token}")
def verify_email(token: str, db: Session = Depends(get_db)):
    """Consume an email verification token"""
    if EmailVerificationService.consume(db, token):
        return success_response(
            message="Your email has been verified successfully! You can now log in to your account."
        )
    return error_response(
        message="Invalid or expired verification link. Please request a new verification email.",
        error_code="INVALID_VERIFICATION_TOKEN",
        status_code=400,
    )

@router.post("/resend-verification")
def resend_verification(
    data: ResendVerificationRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Send a new verification email without revealing whether the account exists"""
    _check_rate_limit(request)

    user = UserRepo.get_by_email(db, data.email)
    if user is None:
        return success_response(message=RESEND_MESSAGE)

    if user.is_email_verified:
        return success_response(message="Your email is already verified. You can log in to your account.")

    try:
        EmailVerificationService.resend(db, user)
    except MailTransportError:
        return error_response(
            message="Failed to send verification email. Please try again later.",
            error_code="MAIL_TRANSPORT_ERROR",
            status_code=502,
        )

    return success_response(message="A new verification email has been sent to your email address.")

@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Exchange credentials for a bearer token"""
    _check_rate_limit(request)

    user = UserService.authenticate(db, data.email, data.password, meta)
    token = create_access_token(user)

    return success_response(
        message="Login successful",
        data={
            "token": token,
            "user": UserResponse.from_user(user),
        },
    )

@router.post("/logout")
async def logout(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Record the logout; the client discards its token"""
    UserService.logout(db, user, meta)
    return success_response(message="Logged out")
