"""
Custom exceptions for the application
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette_context import context

from benderscore.core.config import settings
from benderscore.core.logging import log


class BaseAPIException(HTTPException):
    """Base exception for API errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    headers: Optional[Dict[str, str]] = None

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(status_code=self.status_code, detail=detail or self.detail, headers=headers or self.headers)
        # Store any additional context
        self.context = kwargs


class NotFoundError(BaseAPIException):
    """Resource not found"""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"


class ConflictError(BaseAPIException):
    """Conflict with existing resource"""

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource conflict"


class UnauthorizedError(BaseAPIException):
    """Unauthorized access"""

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"
    headers = {"WWW-Authenticate": "ApiKey"}


class DatabaseError(BaseAPIException):
    """Database operation error"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Database error"


class DataSourceError(BaseAPIException):
    """Catalog or overlay file could not be read or written"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Product data source unavailable"


class NoDraftError(ConflictError):
    """Publish was requested for a product that has no draft"""

    detail = "No draft exists for this product"

    def __init__(self, product_id: str):
        super().__init__(product_id=product_id)
        self.product_id = product_id


class VersionConflictError(ConflictError):
    """Another publish claimed the same version number first"""

    detail = "Concurrent publish conflict, please retry"


# Error response models for OpenAPI documentation
class ErrorDetail(BaseModel):
    """Error detail model"""

    message: str
    type: str
    context: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Standard error response"""

    error: ErrorDetail
    correlation_id: Optional[str] = None
    timestamp: str


def _correlation_id() -> str:
    if context.exists():
        return context.get("X-Correlation-ID") or context.get("X-Request-ID") or "no-context"
    return "no-context"


# Exception handlers
async def handle_api_exception(request: Request, exc: BaseAPIException) -> JSONResponse:
    """Handle API exceptions with structured response"""
    error_response = {
        "error": {"message": exc.detail, "type": exc.__class__.__name__, "context": getattr(exc, "context", {})},
        "correlation_id": _correlation_id(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return JSONResponse(status_code=exc.status_code, content=error_response, headers=getattr(exc, "headers", None))


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions"""
    # Log the full exception
    log.opt(exception=exc).error("Unexpected error", path=request.url.path)

    # Don't expose internal errors in production
    if settings.DEBUG:
        detail = str(exc)
    else:
        detail = "An unexpected error occurred"

    error_response = {
        "error": {"message": detail, "type": "InternalServerError", "context": {}},
        "correlation_id": _correlation_id(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_response)
