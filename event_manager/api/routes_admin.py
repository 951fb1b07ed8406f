"""
Admin API routes - activity log reporting, requires an administrator
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from event_manager.core.config import settings
from event_manager.core.db import get_db
from event_manager.models import User
from event_manager.schemas.common import PaginationParams
from event_manager.schemas.post import CommentResponse
from event_manager.schemas.user import EventLogFilters, EventLogResponse
from event_manager.services.export_service import XLSX_MEDIA_TYPE, ExportService
from event_manager.services.repositories import CommentRepo, EventLogRepo
from event_manager.utils.responses import paginated_response, success_response
from event_manager.utils.security import require_admin

router = APIRouter()

@router.get("/logs")
async def list_logs(
    event_type: Optional[str] = None,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = 1,
    per_page: int = Query(settings.LOGS_PER_PAGE, ge=1, le=500),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Activity log entries, newest first"""
    pagination = PaginationParams(page=page, per_page=per_page)
    filters = EventLogFilters(
        event_type=event_type,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        limit=pagination.limit,
        offset=pagination.offset,
    )

    logs = EventLogRepo.find_with_filters(db, filters)
    total = EventLogRepo.count_with_filters(db, filters)

    return paginated_response(
        message="Activity log retrieved",
        items=[EventLogResponse.model_validate(log) for log in logs],
        pagination=pagination.to_dict(total),
    )

@router.get("/logs/stats")
async def log_stats(
    days: int = Query(30, ge=1),
    user_id: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Entry counts per event type over the last `days` days"""
    if user_id is not None:
        by_type = EventLogRepo.get_user_activity_stats(db, user_id, days=days)
    else:
        by_type = EventLogRepo.get_event_stats(db, days=days)

    return success_response(
        message="Activity statistics retrieved",
        data={
            "days": days,
            "by_type": by_type,
            "comments": CommentRepo.get_comment_stats(db),
        },
    )

@router.get("/logs/export.xlsx")
async def export_logs(
    event_type: Optional[str] = None,
    user_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Download matching activity log entries as Excel"""
    filters = EventLogFilters(
        event_type=event_type,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
    )
    excel_content = ExportService.export_logs(EventLogRepo.find_with_filters(db, filters))

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=activity_log.xlsx"}
    )

@router.delete("/logs")
async def prune_logs(
    days_to_keep: int = Query(settings.LOG_RETENTION_DAYS, ge=1),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Delete entries older than the retention period"""
    deleted = EventLogRepo.clean_old_logs(db, days_to_keep=days_to_keep)
    return success_response(
        message=f"{deleted} old activity log entries deleted",
        data={"deleted": deleted, "days_to_keep": days_to_keep},
    )

@router.get("/comments/moderation")
async def moderation_queue(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Hidden comments awaiting review"""
    return success_response(
        message="Moderation queue retrieved",
        data=[CommentResponse.model_validate(c) for c in CommentRepo.find_moderation_queue(db)],
    )
