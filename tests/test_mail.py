"""
Tests for the mail sender
"""

import smtplib
import pytest

from event_manager.core.exceptions import MailTransportError
from event_manager.models import User
from event_manager.services.mail_service import MailService, html_to_text

class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, from_email, to_emails, message):
        FakeSMTP.sent.append((from_email, to_emails, message))

class RefusingSMTP(FakeSMTP):
    def sendmail(self, from_email, to_emails, message):
        raise smtplib.SMTPRecipientsRefused({to_emails[0]: (550, b"no such user")})

@pytest.fixture
def smtp_mailer():
    mailer = MailService()
    mailer.smtp_host = "smtp.example.com"
    mailer.smtp_configured = True
    return mailer

def test_send_is_simulated_without_host():
    mailer = MailService()
    mailer.smtp_configured = False

    result = mailer.send_email("someone@example.com", "Hi", "<p>Hello</p>")

    assert result["simulated"] is True
    assert result["to"] == "someone@example.com"

def test_send_over_smtp(smtp_mailer, monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    user = User(email="ann@example.com", first_name="Ann", last_name="Lee")

    result = smtp_mailer.send_welcome_email(user)

    assert result["success"] is True
    assert "simulated" not in result
    from_email, to_emails, message = FakeSMTP.sent[0]
    assert to_emails == ["ann@example.com"]
    assert "Welcome to" in message

def test_transport_failure_raises(smtp_mailer, monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP", RefusingSMTP)

    with pytest.raises(MailTransportError) as exc_info:
        smtp_mailer.send_email("ghost@example.com", "Hi", "<p>Hello</p>")

    assert exc_info.value.details["service"] == "smtp"

def test_html_to_text():
    assert html_to_text("<p>Hello</p>\n\n\n<p>World</p>") == "Hello\n\nWorld"
