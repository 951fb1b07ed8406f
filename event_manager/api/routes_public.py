"""
Public API routes - no authentication required
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from event_manager.core.db import get_db
from event_manager.schemas.event import EventResponse
from event_manager.schemas.post import PostResponse
from event_manager.services.repositories import EventRepo, PostRepo
from event_manager.utils.responses import success_response

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/home")
async def home(db: Session = Depends(get_db)):
    """Upcoming events, recent posts and event statistics"""
    return success_response(
        message="Home retrieved",
        data={
            "upcoming_events": [EventResponse.model_validate(e) for e in EventRepo.find_upcoming(db, limit=6)],
            "recent_posts": [PostResponse.model_validate(p) for p in PostRepo.find_recent(db, limit=3)],
            "event_stats": EventRepo.get_event_stats(db),
        },
    )
