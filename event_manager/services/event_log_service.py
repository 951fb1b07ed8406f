"""
Activity (audit) log recorder
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from event_manager.core.exceptions import ValidationError
from event_manager.models import Comment, Event, EventLog, Post, User
from event_manager.schemas.common import RequestMetadata
from event_manager.services.repositories import EventLogRepo

logger = logging.getLogger(__name__)

MAX_IP_LENGTH = 45
MAX_USER_AGENT_LENGTH = 500


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


class EventLogService:
    """Appends activity records; records are never updated afterwards"""

    @staticmethod
    def log(
        db: Session,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        user: Optional[User] = None,
        meta: Optional[RequestMetadata] = None,
    ) -> EventLog:
        """Record one activity entry and commit it"""
        event_type = getattr(event_type, "value", event_type)
        if event_type not in EventLog.available_event_types():
            raise ValidationError(f"Unknown event type: {event_type}", field="event_type")

        ip_address = meta.ip_address if meta else None
        user_agent = meta.user_agent if meta else None

        return EventLogRepo.create(
            db,
            event_type=event_type,
            payload=dict(payload or {}),
            user_id=user.id if user is not None else None,
            ip_address=ip_address[:MAX_IP_LENGTH] if ip_address else None,
            user_agent=user_agent[:MAX_USER_AGENT_LENGTH] if user_agent else None,
        )

    @staticmethod
    def log_safely(
        db: Session,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        user: Optional[User] = None,
        meta: Optional[RequestMetadata] = None,
    ) -> Optional[EventLog]:
        """Like `log`, but a failure is logged and rolled back instead of raised"""
        try:
            return EventLogService.log(db, event_type, payload, user=user, meta=meta)
        except Exception:
            db.rollback()
            logger.exception(f"Failed to record activity log entry {getattr(event_type, 'value', event_type)}")
            return None

    # Payload builders

    @staticmethod
    def user_payload(user: User) -> Dict[str, Any]:
        return {
            "user_id": user.id,
            "email": user.email,
            "full_name": user.full_name,
        }

    @staticmethod
    def event_payload(event: Event) -> Dict[str, Any]:
        return {
            "event_id": event.id,
            "event_title": event.title,
            "event_status": event.status,
            "start_date": _iso(event.start_date),
            "end_date": _iso(event.end_date),
        }

    @staticmethod
    def participant_payload(event: Event, user: User) -> Dict[str, Any]:
        return {
            "event_id": event.id,
            "event_title": event.title,
            "participant_id": user.id,
            "participant_email": user.email,
            "participant_count": event.participant_count,
        }

    @staticmethod
    def post_payload(post: Post) -> Dict[str, Any]:
        return {
            "post_id": post.id,
            "post_title": post.title,
            "post_slug": post.slug,
            "is_published": post.is_published,
        }

    @staticmethod
    def comment_payload(comment: Comment) -> Dict[str, Any]:
        return {
            "comment_id": comment.id,
            "post_id": comment.post_id,
            "parent_id": comment.parent_id,
            "is_hidden": comment.is_hidden,
        }
