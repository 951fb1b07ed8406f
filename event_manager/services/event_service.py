"""
Event lifecycle and participation rules
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_manager.core.exceptions import (
    AlreadyRegisteredError,
    ForbiddenError,
    IneligibleRegistrationError,
    NotRegisteredError,
    ValidationError,
)
from event_manager.models import ROLE_ADMIN, Event, EventLogType, EventStatus, User
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.event import EventCreate, EventDetail, EventUpdate
from event_manager.services.event_log_service import EventLogService
from event_manager.services.repositories import EventRepo

logger = logging.getLogger(__name__)


def can_edit(actor_id: Optional[int], actor_roles: Iterable[str], owner_id: Optional[int]) -> bool:
    """The creator of a resource and administrators may change it"""
    if actor_id is None:
        return False
    return actor_id == owner_id or ROLE_ADMIN in set(actor_roles or [])


class EventService:
    """Service for event participation and lifecycle operations"""

    @staticmethod
    def can_register(event: Event, user: Optional[User] = None, now=None) -> bool:
        return (
            event.status == EventStatus.PLANNED.value
            and event.can_accept_more_participants()
            and event.is_upcoming(now)
        )

    @staticmethod
    def is_registered(event: Event, user: Optional[User]) -> bool:
        return user is not None and event.is_participant(user)

    @staticmethod
    def can_edit_event(event: Event, actor: Optional[User]) -> bool:
        if actor is None:
            return False
        return can_edit(actor.id, actor.get_roles(), event.created_by_id)

    @staticmethod
    def register(
        db: Session,
        event: Event,
        user: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Event:
        """Add the user to the event's participants"""
        if not EventService.can_register(event, user):
            raise IneligibleRegistrationError(event.id)
        if EventService.is_registered(event, user):
            raise AlreadyRegisteredError(event.id)

        EventRepo.lock(db, event.id)
        try:
            inserted = EventRepo.insert_participant_if_capacity(db, event.id, user.id)
            if inserted == 0:
                db.rollback()
                raise IneligibleRegistrationError(event.id)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AlreadyRegisteredError(event.id)

        db.refresh(event)
        logger.info(f"User {user.id} registered for event {event.id}")

        EventLogService.log_safely(
            db,
            EventLogType.EVENT_PARTICIPANT_ADDED,
            EventLogService.participant_payload(event, user),
            user=user,
            meta=meta,
        )
        return event

    @staticmethod
    def unregister(
        db: Session,
        event: Event,
        user: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Event:
        """Remove the user from the event's participants"""
        if not EventService.is_registered(event, user):
            raise NotRegisteredError(event.id)

        removed = EventRepo.delete_participant(db, event.id, user.id)
        if removed == 0:
            db.rollback()
            raise NotRegisteredError(event.id)
        db.commit()

        db.refresh(event)
        logger.info(f"User {user.id} unregistered from event {event.id}")

        EventLogService.log_safely(
            db,
            EventLogType.EVENT_PARTICIPANT_REMOVED,
            EventLogService.participant_payload(event, user),
            user=user,
            meta=meta,
        )
        return event

    @staticmethod
    def create_event(
        db: Session,
        data: EventCreate,
        creator: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Event:
        event = Event(
            title=data.title,
            description=data.description,
            location=data.location,
            status=EventStatus(data.status).value,
            start_date=data.start_date,
            end_date=data.end_date,
            max_participants=data.max_participants,
            is_public=data.is_public,
            created_by_id=creator.id,
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} created by user {creator.id}")

        EventLogService.log_safely(
            db,
            EventLogType.EVENT_CREATED,
            EventLogService.event_payload(event),
            user=creator,
            meta=meta,
        )
        return event

    @staticmethod
    def update_event(
        db: Session,
        event: Event,
        data: EventUpdate,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> Event:
        """Apply the provided fields; any status may be set by an editor"""
        if not EventService.can_edit_event(event, actor):
            raise ForbiddenError("You are not allowed to edit this event.")

        changes = data.model_dump(exclude_unset=True)
        for field in ("title", "start_date", "max_participants", "status", "is_public"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be empty.", field=field)

        start_date = changes.get("start_date", event.start_date)
        end_date = changes.get("end_date", event.end_date)
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date cannot be before the start date.", field="end_date")

        max_participants = changes.get("max_participants", event.max_participants)
        if max_participants and max_participants < event.participant_count:
            raise ValidationError(
                f"The event already has {event.participant_count} participants.",
                field="max_participants",
            )

        if "status" in changes:
            changes["status"] = EventStatus(changes["status"]).value
        for field, value in changes.items():
            setattr(event, field, value)

        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} updated by user {actor.id}")

        EventLogService.log_safely(
            db,
            EventLogType.EVENT_UPDATED,
            EventLogService.event_payload(event),
            user=actor,
            meta=meta,
        )
        return event

    @staticmethod
    def delete_event(
        db: Session,
        event: Event,
        actor: User,
        meta: Optional[RequestMetadata] = None,
    ) -> None:
        if not EventService.can_edit_event(event, actor):
            raise ForbiddenError("You are not allowed to delete this event.")

        snapshot = {
            "event_id": event.id,
            "event_title": event.title,
            "event_status": event.status,
        }
        db.delete(event)
        db.commit()
        logger.info(f"Event {snapshot['event_id']} deleted by user {actor.id}")

        EventLogService.log_safely(db, EventLogType.EVENT_DELETED, snapshot, user=actor, meta=meta)

    @staticmethod
    def to_detail(event: Event, viewer: Optional[User] = None) -> EventDetail:
        """Event with the viewer's permissions attached"""
        return EventDetail.model_validate({
            "id": event.id,
            "title": event.title,
            "description": event.description,
            "location": event.location,
            "status": event.status,
            "start_date": event.start_date,
            "end_date": event.end_date,
            "max_participants": event.max_participants,
            "is_public": event.is_public,
            "created_by_id": event.created_by_id,
            "participant_count": event.participant_count,
            "created_at": event.created_at,
            "updated_at": event.updated_at,
            "can_register": viewer is not None and EventService.can_register(event, viewer),
            "is_registered": EventService.is_registered(event, viewer),
            "can_edit": EventService.can_edit_event(event, viewer),
            "can_accept_more_participants": event.can_accept_more_participants(),
        })
