"""
Mail service - renders Jinja2 email templates and sends them over SMTP
"""

import logging
import re
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from event_manager.core.config import settings
from event_manager.core.exceptions import MailTransportError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_TAGS = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def html_to_text(html: str) -> str:
    text = _TAGS.sub("", html)
    return _BLANK_LINES.sub("\n\n", text).strip()


class MailService:
    """Service for sending templated emails"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_pass = settings.SMTP_PASS
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.MAIL_FROM_EMAIL
        self.from_name = settings.MAIL_FROM_NAME
        # Without a host, sends are simulated (development/testing)
        self.smtp_configured = bool(self.smtp_host)
        self.templates = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, template_name: str, **context: Any) -> str:
        context.setdefault("app_name", settings.APP_NAME)
        context.setdefault("base_url", settings.BASE_URL)
        return self.templates.get_template(template_name).render(**context)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        to_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send an email; raises MailTransportError when the transport fails"""
        if not self.smtp_configured:
            logger.warning(f"SMTP not configured - simulating email send to {to_email}")
            return {
                "success": True,
                "message": "Email simulated (SMTP not configured)",
                "simulated": True,
                "to": to_email,
                "subject": subject,
            }

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.from_email))
        message["To"] = formataddr((to_name, to_email)) if to_name else to_email
        message.attach(MIMEText(html_to_text(html_body), "plain"))
        message.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_pass:
                    server.login(self.smtp_user, self.smtp_pass)
                server.sendmail(self.from_email, [to_email], message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise MailTransportError(f"Could not send email to {to_email}: {e}")

        logger.info(f"Email sent to {to_email}")
        return {"success": True, "message": "Email sent successfully", "to": to_email, "subject": subject}

    def send_verification_email(self, user, verification_url: str, expires_at: Optional[datetime]) -> Dict[str, Any]:
        html = self.render(
            "emails/email_verification.html",
            user=user,
            verification_url=verification_url,
            expires_at=expires_at,
        )
        return self.send_email(
            user.email,
            f"Please verify your email address - {settings.APP_NAME}",
            html,
            to_name=user.full_name,
        )

    def send_welcome_email(self, user) -> Dict[str, Any]:
        html = self.render("emails/welcome.html", user=user, login_url=f"{settings.BASE_URL}/auth/login")
        return self.send_email(user.email, f"Welcome to {settings.APP_NAME}!", html, to_name=user.full_name)

    def send_registration_confirmation(self, user) -> Dict[str, Any]:
        html = self.render("emails/registration_confirmation.html", user=user)
        return self.send_email(
            user.email,
            f"Registration Successful - {settings.APP_NAME}",
            html,
            to_name=user.full_name,
        )


# Singleton instance
mail_service = MailService()
