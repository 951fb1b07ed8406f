"""
Tests for the email verification token lifecycle
"""

import re
import pytest
from datetime import timedelta

from event_manager.core.exceptions import AlreadyVerifiedError, MailTransportError
from event_manager.models import EventLog
from event_manager.services.mail_service import mail_service
from event_manager.services.verification_service import EmailVerificationService
from event_manager.utils.clock import utcnow

@pytest.fixture
def unverified_user(make_user):
    return make_user("new@example.com", is_active=False, is_email_verified=False, first_name="Nina")

def test_generate_token_is_random_hex_with_expiry(db_session, unverified_user):
    before = utcnow()

    token = EmailVerificationService.generate_token(db_session, unverified_user)

    assert re.fullmatch(r"[0-9a-f]{64}", token)
    assert unverified_user.email_verification_token == token
    expires_at = unverified_user.email_verification_token_expires_at
    assert before + timedelta(hours=24) <= expires_at <= utcnow() + timedelta(hours=24)

def test_generate_token_replaces_previous_token(db_session, unverified_user):
    first = EmailVerificationService.generate_token(db_session, unverified_user)
    second = EmailVerificationService.generate_token(db_session, unverified_user)

    assert first != second
    assert unverified_user.email_verification_token == second
    assert EmailVerificationService.consume(db_session, first) is False

def test_generate_token_for_verified_user(db_session, attendee):
    with pytest.raises(AlreadyVerifiedError):
        EmailVerificationService.generate_token(db_session, attendee)

def test_verification_url():
    url = EmailVerificationService.verification_url("abc123")

    assert url.endswith("/auth/verify-email/abc123")
    assert url.startswith("http")

def test_consume_verifies_and_activates(db_session, unverified_user):
    token = EmailVerificationService.generate_token(db_session, unverified_user)

    assert EmailVerificationService.consume(db_session, token) is True

    db_session.refresh(unverified_user)
    assert unverified_user.is_email_verified is True
    assert unverified_user.is_active is True
    assert unverified_user.email_verification_token is None
    assert unverified_user.email_verification_token_expires_at is None

def test_consume_is_single_use(db_session, unverified_user):
    token = EmailVerificationService.generate_token(db_session, unverified_user)

    assert EmailVerificationService.consume(db_session, token) is True
    assert EmailVerificationService.consume(db_session, token) is False

def test_consume_rejects_unknown_and_empty_tokens(db_session, unverified_user):
    EmailVerificationService.generate_token(db_session, unverified_user)

    assert EmailVerificationService.consume(db_session, "") is False
    assert EmailVerificationService.consume(db_session, "f" * 64) is False

def test_consume_expired_token_changes_nothing(db_session, unverified_user):
    token = EmailVerificationService.generate_token(db_session, unverified_user)

    later = utcnow() + timedelta(hours=25)
    assert EmailVerificationService.consume(db_session, token, now=later) is False

    db_session.refresh(unverified_user)
    assert unverified_user.is_email_verified is False
    assert unverified_user.is_active is False
    assert unverified_user.email_verification_token == token

def test_consume_for_already_verified_user(db_session, attendee):
    attendee.set_verification_token("a" * 64, utcnow() + timedelta(hours=1))
    db_session.commit()

    assert EmailVerificationService.consume(db_session, "a" * 64) is True
    assert db_session.query(EventLog).filter(EventLog.event_type == "user.verified").count() == 0

def test_consume_records_verified_log(db_session, unverified_user):
    token = EmailVerificationService.generate_token(db_session, unverified_user)

    EmailVerificationService.consume(db_session, token)

    log = db_session.query(EventLog).filter(EventLog.event_type == "user.verified").one()
    assert log.user_id == unverified_user.id
    assert log.payload["email"] == "new@example.com"

def test_consume_survives_welcome_email_failure(db_session, unverified_user, monkeypatch):
    def broken_send(user):
        raise MailTransportError("connection refused")

    monkeypatch.setattr(mail_service, "send_welcome_email", broken_send)
    token = EmailVerificationService.generate_token(db_session, unverified_user)

    assert EmailVerificationService.consume(db_session, token) is True
    db_session.refresh(unverified_user)
    assert unverified_user.is_email_verified is True

def test_send_verification_email_mails_the_link(db_session, unverified_user, monkeypatch):
    sent = {}

    def capture(user, verification_url, expires_at):
        sent["email"] = user.email
        sent["url"] = verification_url
        sent["expires_at"] = expires_at
        return {"success": True, "simulated": True}

    monkeypatch.setattr(mail_service, "send_verification_email", capture)

    token = EmailVerificationService.send_verification_email(db_session, unverified_user)

    assert sent["email"] == "new@example.com"
    assert sent["url"].endswith(f"/auth/verify-email/{token}")
    assert sent["expires_at"] == unverified_user.email_verification_token_expires_at

def test_resend_for_verified_user(db_session, attendee):
    with pytest.raises(AlreadyVerifiedError):
        EmailVerificationService.resend(db_session, attendee)

def test_verification_email_renders_link():
    from event_manager.models import User

    user = User(email="render@example.com", first_name="Rita")
    html = mail_service.render(
        "emails/email_verification.html",
        user=user,
        verification_url="http://localhost:8000/auth/verify-email/xyz",
        expires_at=utcnow(),
    )

    assert "http://localhost:8000/auth/verify-email/xyz" in html
    assert "Rita" in html
