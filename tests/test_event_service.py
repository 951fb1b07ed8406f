"""
Tests for event participation and lifecycle rules
"""

import pytest
from datetime import timedelta

from event_manager.core.exceptions import (
    AlreadyRegisteredError,
    ForbiddenError,
    IneligibleRegistrationError,
    NotRegisteredError,
    ValidationError,
)
from event_manager.models import EventLog, EventStatus, event_participants
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.event import EventCreate, EventUpdate
from event_manager.services.event_log_service import EventLogService
from event_manager.services.event_service import EventService
from event_manager.services.repositories import EventRepo
from event_manager.utils.clock import utcnow

META = RequestMetadata(ip_address="203.0.113.7", user_agent="pytest-agent")

def _membership_rows(db_session, event_id):
    return db_session.execute(
        event_participants.select().where(event_participants.c.event_id == event_id)
    ).fetchall()

def test_register_adds_participant(db_session, upcoming_event, attendee):
    """Registering increases the participant count by exactly one"""
    before = upcoming_event.participant_count

    EventService.register(db_session, upcoming_event, attendee, META)

    assert EventService.is_registered(upcoming_event, attendee)
    assert upcoming_event.participant_count == before + 1

def test_register_twice_raises_already_registered(db_session, upcoming_event, attendee):
    EventService.register(db_session, upcoming_event, attendee)

    with pytest.raises(AlreadyRegisteredError):
        EventService.register(db_session, upcoming_event, attendee)

    assert upcoming_event.participant_count == 1
    assert len(_membership_rows(db_session, upcoming_event.id)) == 1

def test_register_full_event_is_ineligible(db_session, make_event, make_user):
    event = make_event(max_participants=1)
    first = make_user("first@example.com")
    second = make_user("second@example.com")

    EventService.register(db_session, event, first)
    assert not event.can_accept_more_participants()

    with pytest.raises(IneligibleRegistrationError):
        EventService.register(db_session, event, second)

    assert event.participant_count == 1

@pytest.mark.parametrize("status", [EventStatus.ONGOING, EventStatus.COMPLETED, EventStatus.CANCELLED])
def test_register_requires_planned_status(db_session, make_event, attendee, status):
    event = make_event(status=status.value)

    assert not EventService.can_register(event, attendee)
    with pytest.raises(IneligibleRegistrationError):
        EventService.register(db_session, event, attendee)

def test_register_requires_upcoming_event(db_session, make_event, attendee):
    event = make_event(start_date=utcnow() - timedelta(hours=1))

    assert not EventService.can_register(event, attendee)
    with pytest.raises(IneligibleRegistrationError):
        EventService.register(db_session, event, attendee)

def test_guarded_insert_refuses_when_full(db_session, make_event, make_user):
    """The storage guard holds even if the in-memory check was bypassed"""
    event = make_event(max_participants=1)
    first = make_user("first@example.com")
    second = make_user("second@example.com")

    assert EventRepo.insert_participant_if_capacity(db_session, event.id, first.id) == 1
    assert EventRepo.insert_participant_if_capacity(db_session, event.id, second.id) == 0
    db_session.commit()

    assert len(_membership_rows(db_session, event.id)) == 1

def test_register_with_stale_capacity_check(db_session, make_event, make_user, monkeypatch):
    """A registration that passed a stale eligibility check is still refused"""
    event = make_event(max_participants=1)
    first = make_user("first@example.com")
    second = make_user("second@example.com")
    EventService.register(db_session, event, first)

    monkeypatch.setattr(EventService, "can_register", staticmethod(lambda event, user=None, now=None: True))

    with pytest.raises(IneligibleRegistrationError):
        EventService.register(db_session, event, second)
    assert len(_membership_rows(db_session, event.id)) == 1

def test_unlimited_event_accepts_many(db_session, make_event, make_user):
    event = make_event(max_participants=0)
    for i in range(5):
        EventService.register(db_session, event, make_user(f"user{i}@example.com"))

    assert event.participant_count == 5
    assert event.can_accept_more_participants()

def test_unregister_removes_participant(db_session, upcoming_event, attendee):
    EventService.register(db_session, upcoming_event, attendee)

    EventService.unregister(db_session, upcoming_event, attendee, META)

    assert not EventService.is_registered(upcoming_event, attendee)
    assert upcoming_event.participant_count == 0

def test_unregister_non_participant(db_session, upcoming_event, attendee):
    with pytest.raises(NotRegisteredError):
        EventService.unregister(db_session, upcoming_event, attendee)

def test_register_logs_participant_added(db_session, upcoming_event, attendee):
    EventService.register(db_session, upcoming_event, attendee, META)

    log = db_session.query(EventLog).filter(EventLog.event_type == "event.participant.added").one()
    assert log.user_id == attendee.id
    assert log.ip_address == "203.0.113.7"
    assert log.user_agent == "pytest-agent"
    assert log.payload["event_id"] == upcoming_event.id
    assert log.payload["participant_email"] == "attendee@example.com"
    assert log.payload["participant_count"] == 1

def test_register_succeeds_when_audit_log_fails(db_session, upcoming_event, attendee, monkeypatch):
    """A failing log sink never breaks the registration"""
    def broken_log(*args, **kwargs):
        raise RuntimeError("log sink unavailable")

    monkeypatch.setattr(EventLogService, "log", staticmethod(broken_log))

    EventService.register(db_session, upcoming_event, attendee, META)

    assert EventService.is_registered(upcoming_event, attendee)
    assert len(_membership_rows(db_session, upcoming_event.id)) == 1
    assert db_session.query(EventLog).count() == 0

def test_create_event_records_creator_and_log(db_session, organizer):
    data = EventCreate(
        title="  Python Meetup  ",
        start_date=utcnow() + timedelta(days=3),
        end_date=utcnow() + timedelta(days=3, hours=2),
        location="Berlin",
        max_participants=20,
    )

    event = EventService.create_event(db_session, data, organizer, META)

    assert event.id is not None
    assert event.title == "Python Meetup"
    assert event.created_by_id == organizer.id
    assert event.status == "planned"

    log = db_session.query(EventLog).filter(EventLog.event_type == "event.created").one()
    assert log.payload["event_id"] == event.id
    assert log.payload["event_title"] == "Python Meetup"
    assert log.payload["event_status"] == "planned"
    assert log.payload["start_date"] == event.start_date.isoformat()

def test_event_create_rejects_bad_input():
    with pytest.raises(ValueError):
        EventCreate(title="  ", start_date=utcnow())
    with pytest.raises(ValueError):
        EventCreate(title="Meetup", start_date=utcnow(), max_participants=-1)
    with pytest.raises(ValueError):
        EventCreate(title="Meetup", start_date=utcnow(), end_date=utcnow() - timedelta(days=1))

def test_update_event_by_owner(db_session, upcoming_event, organizer):
    event = EventService.update_event(
        db_session, upcoming_event, EventUpdate(title="Renamed Meetup", location="Paris"), organizer
    )

    assert event.title == "Renamed Meetup"
    assert event.location == "Paris"
    assert event.max_participants == 10
    assert db_session.query(EventLog).filter(EventLog.event_type == "event.updated").count() == 1

def test_update_event_status_transitions_are_permissive(db_session, upcoming_event, organizer):
    """Any status can be set by an editor, including back to planned"""
    for status in ["cancelled", "completed", "planned", "ongoing"]:
        EventService.update_event(db_session, upcoming_event, EventUpdate(status=status), organizer)
        assert upcoming_event.status == status

def test_update_event_forbidden_for_other_users(db_session, upcoming_event, attendee):
    with pytest.raises(ForbiddenError):
        EventService.update_event(db_session, upcoming_event, EventUpdate(title="Hijacked"), attendee)

def test_update_event_allowed_for_admin(db_session, upcoming_event, admin):
    event = EventService.update_event(db_session, upcoming_event, EventUpdate(title="Admin Edit"), admin)
    assert event.title == "Admin Edit"

def test_update_event_rejects_capacity_below_participants(db_session, make_event, make_user, organizer):
    event = make_event(max_participants=5)
    EventService.register(db_session, event, make_user("one@example.com"))
    EventService.register(db_session, event, make_user("two@example.com"))

    with pytest.raises(ValidationError):
        EventService.update_event(db_session, event, EventUpdate(max_participants=1), organizer)

def test_delete_event_snapshots_and_cascades(db_session, upcoming_event, organizer, attendee):
    EventService.register(db_session, upcoming_event, attendee)
    event_id = upcoming_event.id

    EventService.delete_event(db_session, upcoming_event, organizer, META)

    assert EventRepo.get_by_id(db_session, event_id) is None
    assert len(_membership_rows(db_session, event_id)) == 0
    log = db_session.query(EventLog).filter(EventLog.event_type == "event.deleted").one()
    assert log.payload == {"event_id": event_id, "event_title": "Python Meetup", "event_status": "planned"}

def test_delete_event_forbidden_for_other_users(db_session, upcoming_event, attendee):
    with pytest.raises(ForbiddenError):
        EventService.delete_event(db_session, upcoming_event, attendee)

def test_event_detail_reports_viewer_permissions(db_session, upcoming_event, organizer, attendee):
    EventService.register(db_session, upcoming_event, attendee)

    attendee_view = EventService.to_detail(upcoming_event, attendee)
    assert attendee_view.is_registered
    assert not attendee_view.can_edit

    organizer_view = EventService.to_detail(upcoming_event, organizer)
    assert organizer_view.can_edit
    assert organizer_view.can_register
    assert organizer_view.participant_count == 1

    anonymous_view = EventService.to_detail(upcoming_event, None)
    assert not anonymous_view.can_register
    assert not anonymous_view.is_registered
