"""
Event Manager - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
import uvicorn

from event_manager.core.config import settings
from event_manager.core.db import engine, Base, get_db
from event_manager.core.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    ConflictError,
    EventManagerError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from event_manager.api import routes_admin, routes_auth, routes_events, routes_posts, routes_profile, routes_public
from event_manager.services.mail_service import TEMPLATES_DIR
from event_manager.services.repositories import EventRepo, PostRepo
from event_manager.utils.responses import error_response

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Most specific families first
ERROR_STATUS = [
    (ValidationError, 422),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (BusinessRuleError, 400),
    (ExternalServiceError, 502),
]

def status_for(exc: EventManagerError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return 400

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Events, participation, posts and activity logging",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(EventManagerError)
async def event_manager_error_handler(request: Request, exc: EventManagerError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    response = error_response(
        message=exc.message,
        error_code=exc.code,
        details=exc.details,
        status_code=status_code,
    )
    if status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    return response

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return error_response(
        message="Validation failed",
        error_code="VALIDATION_ERROR",
        details=errors,
        status_code=422,
    )

# Setup templates
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_auth.router, prefix="/auth", tags=["auth"])
app.include_router(routes_events.router, prefix="/events", tags=["events"])
app.include_router(routes_posts.router, prefix="/posts", tags=["posts"])
app.include_router(routes_posts.comments_router, prefix="/comments", tags=["comments"])
app.include_router(routes_profile.router, prefix="/profile", tags=["profile"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

@app.get("/", response_class=HTMLResponse)
async def root(request: Request, db: Session = Depends(get_db)):
    """Landing page with upcoming events and recent posts"""
    return templates.TemplateResponse(request, "index.html", {
        "title": settings.APP_NAME,
        "events": EventRepo.find_upcoming(db, limit=6),
        "posts": PostRepo.find_recent(db, limit=3),
    })

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
