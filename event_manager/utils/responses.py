"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from event_manager.schemas.common import StandardResponse, ErrorResponse

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def paginated_response(
    message: str,
    items: list,
    pagination: dict,
) -> JSONResponse:
    """Success response for a page of a listing"""
    return success_response(
        message=message,
        data={"items": items, "pagination": pagination}
    )

def rate_limit_error():
    """Create rate limit error"""
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later."
    )
