"""
Tests for the activity log recorder and its queries
"""

import pytest
from datetime import timedelta, timezone

from event_manager.core.exceptions import ValidationError
from event_manager.models import EventLog, EventLogType
from event_manager.schemas.common import RequestMetadata
from event_manager.schemas.user import EventLogFilters
from event_manager.services.event_log_service import EventLogService
from event_manager.services.repositories import EventLogRepo
from event_manager.utils.clock import utcnow

def _backdate(db_session, log, days):
    log.created_at = utcnow() - timedelta(days=days)
    db_session.commit()
    return log

def test_log_accepts_enum_and_string(db_session, attendee):
    by_enum = EventLogService.log(db_session, EventLogType.USER_LOGIN, {"a": 1}, user=attendee)
    by_string = EventLogService.log(db_session, "user.logout")

    assert by_enum.event_type == "user.login"
    assert by_enum.user_id == attendee.id
    assert by_enum.payload == {"a": 1}
    assert by_string.event_type == "user.logout"
    assert by_string.user_id is None
    assert by_string.payload == {}
    assert by_string.created_at is not None

def test_log_rejects_unknown_type(db_session):
    with pytest.raises(ValidationError):
        EventLogService.log(db_session, "user.teleported")

    assert db_session.query(EventLog).count() == 0

def test_log_truncates_client_details(db_session):
    meta = RequestMetadata(ip_address="1" * 60, user_agent="x" * 800)

    log = EventLogService.log(db_session, EventLogType.USER_LOGIN, meta=meta)

    assert len(log.ip_address) == 45
    assert len(log.user_agent) == 500

def test_log_safely_swallows_failures(db_session, monkeypatch):
    assert EventLogService.log_safely(db_session, "not.a.type") is None

    def broken_create(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(EventLogRepo, "create", staticmethod(broken_create))
    assert EventLogService.log_safely(db_session, EventLogType.USER_LOGIN) is None

def test_payload_builders(db_session, upcoming_event, attendee):
    assert EventLogService.user_payload(attendee) == {
        "user_id": attendee.id,
        "email": "attendee@example.com",
        "full_name": "Alan Attendee",
    }
    payload = EventLogService.event_payload(upcoming_event)
    assert payload["event_title"] == "Python Meetup"
    assert payload["end_date"] is None

def test_find_queries_newest_first(db_session, attendee, admin):
    old = _backdate(db_session, EventLogService.log(db_session, EventLogType.USER_LOGIN, user=attendee), 3)
    middle = _backdate(db_session, EventLogService.log(db_session, EventLogType.USER_LOGOUT, user=attendee), 2)
    new = EventLogService.log(db_session, EventLogType.USER_LOGIN, user=admin)

    assert [log.id for log in EventLogRepo.find_recent(db_session)] == [new.id, middle.id, old.id]
    assert [log.id for log in EventLogRepo.find_by_event_type(db_session, "user.login")] == [new.id, old.id]
    assert [log.id for log in EventLogRepo.find_by_user(db_session, attendee.id)] == [middle.id, old.id]
    assert [log.id for log in EventLogRepo.find_recent(db_session, limit=1)] == [new.id]

    in_range = EventLogRepo.find_by_date_range(
        db_session, utcnow() - timedelta(days=4), utcnow() - timedelta(days=1)
    )
    assert [log.id for log in in_range] == [middle.id, old.id]

def test_event_stats_count_by_type(db_session, attendee):
    for _ in range(3):
        EventLogService.log(db_session, EventLogType.USER_LOGIN, user=attendee)
    EventLogService.log(db_session, EventLogType.USER_LOGOUT, user=attendee)
    _backdate(db_session, EventLogService.log(db_session, EventLogType.EVENT_CREATED, user=attendee), 40)

    assert EventLogRepo.get_event_stats(db_session, days=30) == [
        {"event_type": "user.login", "count": 3},
        {"event_type": "user.logout", "count": 1},
    ]
    assert len(EventLogRepo.get_event_stats(db_session, days=60)) == 3

def test_user_activity_stats(db_session, attendee, admin):
    EventLogService.log(db_session, EventLogType.USER_LOGIN, user=attendee)
    EventLogService.log(db_session, EventLogType.USER_LOGIN, user=admin)

    assert EventLogRepo.get_user_activity_stats(db_session, attendee.id) == [
        {"event_type": "user.login", "count": 1},
    ]

def test_clean_old_logs(db_session):
    _backdate(db_session, EventLogService.log(db_session, EventLogType.USER_LOGIN), 120)
    _backdate(db_session, EventLogService.log(db_session, EventLogType.USER_LOGIN), 91)
    EventLogService.log(db_session, EventLogType.USER_LOGIN)

    assert EventLogRepo.clean_old_logs(db_session, days_to_keep=90) == 2
    assert db_session.query(EventLog).count() == 1
    assert EventLogRepo.clean_old_logs(db_session, days_to_keep=90) == 0

def test_filters_and_count(db_session, attendee, admin):
    for _ in range(4):
        EventLogService.log(db_session, EventLogType.USER_LOGIN, user=attendee)
    EventLogService.log(db_session, EventLogType.USER_LOGOUT, user=attendee)
    EventLogService.log(db_session, EventLogType.USER_LOGIN, user=admin)

    filters = EventLogFilters(event_type="user.login", user_id=attendee.id, limit=3, offset=0)

    assert len(EventLogRepo.find_with_filters(db_session, filters)) == 3
    assert EventLogRepo.count_with_filters(db_session, filters) == 4
    assert EventLogRepo.count_with_filters(db_session, EventLogFilters()) == 6

def test_filter_dates_with_offset_are_compared_in_utc(db_session, attendee):
    EventLogService.log(db_session, EventLogType.USER_LOGIN, user=attendee)
    an_hour_ago = (utcnow() - timedelta(hours=1)).replace(tzinfo=timezone.utc)
    plus_five = an_hour_ago.astimezone(timezone(timedelta(hours=5)))

    assert EventLogFilters(end_date=plus_five).end_date == an_hour_ago.replace(tzinfo=None)
    assert EventLogRepo.count_with_filters(db_session, EventLogFilters(end_date=plus_five)) == 0
    assert EventLogRepo.count_with_filters(db_session, EventLogFilters(start_date=plus_five)) == 1
