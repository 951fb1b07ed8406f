"""
Profile API routes - the current user's account
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from event_manager.core.db import get_db
from event_manager.models import User
from event_manager.schemas.event import EventResponse
from event_manager.schemas.user import ProfileUpdate, UserResponse
from event_manager.services.repositories import EventRepo
from event_manager.services.user_service import UserService
from event_manager.utils.responses import success_response
from event_manager.utils.security import get_current_user

router = APIRouter()

@router.get("")
async def get_profile(user: User = Depends(get_current_user)):
    return success_response(message="Profile retrieved", data=UserResponse.from_user(user))

@router.patch("")
async def update_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    user = UserService.update_profile(db, user, data)
    return success_response(message="Profile updated successfully!", data=UserResponse.from_user(user))

@router.get("/events")
async def my_events(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Events the user participates in and events the user created"""
    participating = EventRepo.find_by_participant(db, user.id)
    created = EventRepo.find_by_creator(db, user.id)
    return success_response(
        message="Events retrieved",
        data={
            "participating": [EventResponse.model_validate(e) for e in participating],
            "created": [EventResponse.model_validate(e) for e in created],
        },
    )
