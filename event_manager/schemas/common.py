"""
Common Pydantic schemas
"""

import math
from typing import Any, Optional
from pydantic import BaseModel, field_validator

class StandardResponse(BaseModel):
    """Standard API response"""
    success: bool
    message: str
    data: Optional[Any] = None

class ErrorResponse(BaseModel):
    """Error response schema"""
    success: bool = False
    message: str
    error_code: Optional[str] = None
    details: Optional[Any] = None

class PaginationParams(BaseModel):
    """Pagination parameters; page numbers below 1 are clamped to 1"""
    page: int = 1
    per_page: int = 10

    @field_validator("page", mode="before")
    @classmethod
    def clamp_page(cls, value):
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return 1

    @field_validator("per_page")
    @classmethod
    def positive_per_page(cls, value: int) -> int:
        if value < 1:
            raise ValueError("per_page must be at least 1")
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.per_page)

    def to_dict(self, total: int) -> dict:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "total": total,
            "pages": self.total_pages(total),
        }

class RequestMetadata(BaseModel):
    """Client details captured with audit records; absent outside web requests"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    model_config = {"frozen": True}
