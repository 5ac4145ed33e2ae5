"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": str(resource_id) if resource_id is not None else None}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class InputValidationError(AppException):
    """Raised for malformed or out-of-range numeric input. Values are never clamped."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"field": field} if field else {}
        )


class InvalidStatusTransitionError(AppException):
    """Raised when an invoice status change is not allowed."""

    def __init__(self, current_status: str, requested_status: str):
        super().__init__(
            message=f"Cannot move invoice from {current_status} to {requested_status}",
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_status": current_status, "requested_status": requested_status}
        )


class PersistenceError(AppException):
    """Raised when an atomic write fails. Nothing was stored; retry the whole operation."""

    def __init__(self, message: str = "Failed to persist data", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERSISTENCE_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class InvariantViolationError(AppException):
    """Internal logic error: computed figures disagree with each other."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INTERNAL_002",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_code, exc.message, extra={"details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        },
        headers=getattr(exc, "headers", None)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serializable context (e.g. exception instances) from pydantic errors."""
    errors = []
    for error in exc.errors():
        cleaned = {key: value for key, value in error.items() if key not in ("ctx", "input", "url")}
        if "ctx" in error:
            cleaned["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(cleaned)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
