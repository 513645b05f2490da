"""
Global exception handling for the application.
Every error response shares the `{"success": false, "message": ...}` envelope
the frontend already understands.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class UserNotFoundError(AppError):
    """No account matches the given email or id."""
    def __init__(
        self,
        message: str = "User not found",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, status_code, details)


class IncorrectPasswordError(AppError):
    """Submitted password does not match the stored one."""
    def __init__(self, message: str = "Incorrect password", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class EmailTakenError(AppError):
    """An account already exists for this email (case-insensitive)."""
    def __init__(self, message: str = "Email already registered", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class ValidationError(AppError):
    """Missing or malformed request fields."""
    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class MailTransportUnavailableError(AppError):
    """SMTP is not configured on this server."""
    def __init__(self, message: str = "SMTP not configured on server", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


class MailDeliveryError(AppError):
    """The SMTP server rejected or never received the message."""
    def __init__(self, message: str = "Failed to send notification", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


class StorageError(AppError):
    """The backing record store could not be read or written."""
    def __init__(self, message: str = "Storage unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)


def error_body(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors. 5xx errors are logged, their internals are not returned."""
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            error=exc.__class__.__name__,
            message=exc.message,
            path=request.url.path,
            details=exc.details,
            exc_info=exc.__cause__ is not None,
        )
    if isinstance(exc, StorageError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("An unexpected error occurred. Please try again later."),
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI body validation failures onto 400 with the standard envelope."""
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        if loc and loc[-1] not in fields:
            fields.append(loc[-1])

    message = f"Invalid or missing fields: {', '.join(fields)}" if fields else "Invalid request body"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(message))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions globally."""
    logger.exception("Unexpected error occurred", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("An unexpected error occurred. Please try again later."),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
