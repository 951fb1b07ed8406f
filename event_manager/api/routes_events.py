"""
Event API routes - listing, authoring and participation
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from event_manager.core.config import settings
from event_manager.core.db import get_db
from event_manager.core.exceptions import ForbiddenError, NotFoundError
from event_manager.models import Event, EventStatus, User
from event_manager.schemas.common import PaginationParams, RequestMetadata
from event_manager.schemas.event import EventCreate, EventFilters, EventResponse, EventUpdate
from event_manager.services.event_service import EventService
from event_manager.services.export_service import XLSX_MEDIA_TYPE, ExportService
from event_manager.services.qr_service import QRService
from event_manager.services.repositories import EventRepo
from event_manager.utils.responses import paginated_response, success_response
from event_manager.utils.security import get_current_user, get_optional_user, request_metadata

router = APIRouter()

def _get_event(db: Session, event_id: int) -> Event:
    event = EventRepo.get_by_id(db, event_id)
    if not event:
        raise NotFoundError("Event", event_id)
    return event

@router.get("")
async def list_events(
    status: Optional[EventStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location: Optional[str] = None,
    search: Optional[str] = None,
    order_by: str = "start_date",
    order: str = "asc",
    page: int = 1,
    per_page: int = Query(settings.EVENTS_PER_PAGE, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Filtered, paginated event listing"""
    pagination = PaginationParams(page=page, per_page=per_page)
    filters = EventFilters(
        status=status,
        start_date=start_date,
        end_date=end_date,
        location=location,
        search=search,
        order_by=order_by,
        order=order,
        limit=pagination.limit,
        offset=pagination.offset,
    )

    events = EventRepo.find_with_filters(db, filters)
    total = EventRepo.count_with_filters(db, filters)

    return paginated_response(
        message="Events retrieved",
        items=[EventResponse.model_validate(event) for event in events],
        pagination=pagination.to_dict(total),
    )

@router.get("/upcoming")
async def upcoming_events(db: Session = Depends(get_db)):
    """Next upcoming events that are not cancelled"""
    events = EventRepo.find_upcoming(db, limit=10)
    return success_response(
        message="Upcoming events retrieved",
        data=[EventResponse.model_validate(event) for event in events],
    )

@router.post("", status_code=201)
async def create_event(
    data: EventCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Create a new event owned by the current user"""
    event = EventService.create_event(db, data, user, meta)
    return success_response(
        message="Event created successfully",
        data=EventService.to_detail(event, user),
        status_code=201,
    )

@router.get("/{event_id}")
async def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    """Event details with the viewer's permissions"""
    event = _get_event(db, event_id)
    return success_response(
        message="Event details retrieved",
        data=EventService.to_detail(event, user),
    )

@router.patch("/{event_id}")
async def update_event(
    event_id: int,
    data: EventUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    event = _get_event(db, event_id)
    event = EventService.update_event(db, event, data, user, meta)
    return success_response(
        message="Event updated successfully",
        data=EventService.to_detail(event, user),
    )

@router.delete("/{event_id}")
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    event = _get_event(db, event_id)
    EventService.delete_event(db, event, user, meta)
    return success_response(message="Event deleted successfully")

@router.post("/{event_id}/register")
async def register_for_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    """Register the current user as a participant"""
    event = _get_event(db, event_id)
    event = EventService.register(db, event, user, meta)
    return success_response(
        message="You have successfully registered for this event.",
        data=EventService.to_detail(event, user),
    )

@router.post("/{event_id}/unregister")
async def unregister_from_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    meta: RequestMetadata = Depends(request_metadata),
):
    event = _get_event(db, event_id)
    event = EventService.unregister(db, event, user, meta)
    return success_response(
        message="You have successfully unregistered from this event.",
        data=EventService.to_detail(event, user),
    )

@router.get("/{event_id}/qr.png")
async def get_qr_code(event_id: int, db: Session = Depends(get_db)):
    """QR code image linking to the event"""
    _get_event(db, event_id)

    qr_bytes = QRService.generate_event_qr(event_id)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_event_{event_id}.png"}
    )

@router.get("/{event_id}/participants.xlsx")
async def export_participants(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Participant roster as an Excel workbook (creator or admin)"""
    event = _get_event(db, event_id)
    if not EventService.can_edit_event(event, user):
        raise ForbiddenError("You are not allowed to export this event's participants.")

    excel_content = ExportService.export_participants(event)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=participants_event_{event_id}.xlsx"}
    )
