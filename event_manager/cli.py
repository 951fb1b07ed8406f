"""
Command line administration.

Usage:
    event-manager create-user EMAIL FIRST_NAME LAST_NAME PASSWORD [USER|ADMIN]
    event-manager test-email --email someone@example.com [--type welcome|registration]
    event-manager prune-logs [--days 90]
"""

import argparse
import logging
import sys
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email

from event_manager.core.config import settings
from event_manager.core.db import Base, SessionLocal, engine
from event_manager.core.exceptions import EventManagerError
from event_manager.models import User
from event_manager.services.mail_service import mail_service
from event_manager.services.repositories import EventLogRepo
from event_manager.services.user_service import UserService

logger = logging.getLogger(__name__)


def create_user(args) -> int:
    db = SessionLocal()
    try:
        user = UserService.create_user(
            db,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            password=args.password,
            role=args.role,
        )
    except EventManagerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print("User created successfully!")
    print(f"Email: {user.email}")
    print(f"Name: {user.first_name} {user.last_name}")
    print(f"Roles: {', '.join(user.get_roles())}")
    return 0


def test_email(args) -> int:
    try:
        validate_email(args.email, check_deliverability=False)
    except EmailNotValidError:
        print("Error: Invalid email address provided.", file=sys.stderr)
        return 1

    # Never persisted; only used to render the template
    user = User(email=args.email, first_name="Test", last_name="User")

    print(f"Sending {args.type} email to {args.email}...")
    try:
        if args.type == "welcome":
            result = mail_service.send_welcome_email(user)
        else:
            result = mail_service.send_registration_confirmation(user)
    except EventManagerError as e:
        print(f"Failed to send email: {e.message}", file=sys.stderr)
        return 1

    if result.get("simulated"):
        print("SMTP is not configured; the email was only simulated.")
    else:
        print("Test email sent successfully!")
    return 0


def prune_logs(args) -> int:
    db = SessionLocal()
    try:
        deleted = EventLogRepo.clean_old_logs(db, days_to_keep=args.days)
    finally:
        db.close()

    print(f"Deleted {deleted} activity log entries older than {args.days} days.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="event-manager", description=f"{settings.APP_NAME} administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create-user", help="Create an active, verified user")
    create.add_argument("email", help="User email")
    create.add_argument("first_name", help="First name")
    create.add_argument("last_name", help="Last name")
    create.add_argument("password", help="Password")
    create.add_argument("role", nargs="?", default="USER", help="User role (USER or ADMIN)")
    create.set_defaults(handler=create_user)

    email = subparsers.add_parser("test-email", help="Send a test email")
    email.add_argument("--email", required=True, help="Email address to send test email to")
    email.add_argument("--type", choices=["welcome", "registration"], default="registration", help="Email type")
    email.set_defaults(handler=test_email)

    prune = subparsers.add_parser("prune-logs", help="Delete old activity log entries")
    prune.add_argument("--days", type=int, default=settings.LOG_RETENTION_DAYS, help="Days of entries to keep")
    prune.set_defaults(handler=prune_logs)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    Base.metadata.create_all(bind=engine)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
