"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./event_manager.db")

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    JWT_ALGORITHM: str = "HS256"

    # Application
    APP_NAME: str = "Event Manager"
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Listing
    EVENTS_PER_PAGE: int = 10
    POSTS_PER_PAGE: int = 10
    LOGS_PER_PAGE: int = 50

    # Email verification
    VERIFICATION_TOKEN_TTL_HOURS: int = 24

    # Activity log retention
    LOG_RETENTION_DAYS: int = 90

    # Mail (SMTP)
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USER: str = os.getenv("SMTP_USER", "")
    SMTP_PASS: str = os.getenv("SMTP_PASS", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() in ("1", "true", "yes")
    MAIL_FROM_EMAIL: str = os.getenv("MAIL_FROM_EMAIL", "noreply@event-manager.local")
    MAIL_FROM_NAME: str = "Event Manager"

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
