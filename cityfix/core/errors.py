"""
Error kinds and FastAPI exception handlers

HTTP-facing errors derive from ErrorResponse and carry their status code.
HandlerFailure is raised on the consumer side only and never reaches HTTP.
"""

import traceback
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cityfix.core.config import config
from cityfix.core.logger import logger


class ErrorResponse(Exception):
    """Custom exception for application errors"""

    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ErrorResponse):
    """Malformed input. Never retried."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidEnvelope(ValidationError):
    """A message body that cannot be decoded into its envelope type"""


class AuthenticationError(ErrorResponse):
    def __init__(self, message: str = "Authentication required", details: dict = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class AuthorizationError(ErrorResponse):
    """Identity present but not allowed to act on the entity"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class NotFoundError(ErrorResponse):
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class DeliveryUnavailable(ErrorResponse):
    """The broker could not be reached or refused a publish"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)


class HandlerFailure(Exception):
    """A consumer handler raised while applying a message"""

    def __init__(self, queue: str, message_id: Optional[str], cause: BaseException):
        self.queue = queue
        self.message_id = message_id
        self.cause = cause
        super().__init__(f"Handler for {queue} failed on message {message_id}: {cause}")


class ErrorResponseModel(BaseModel):
    """Pydantic model for error responses"""
    error: str
    details: dict = None


def _request_metadata(request: Request, event: str, status_code: int) -> dict:
    metadata = {
        "event": event,
        "status_code": status_code,
        "url": str(request.url),
        "method": request.method,
    }
    if config.environment == "development":
        metadata["traceback"] = traceback.format_exc()
    return metadata


async def error_response_handler(request: Request, exc: ErrorResponse):
    """Handler for ErrorResponse and its subclasses"""
    metadata = {**_request_metadata(request, "error_response", exc.status_code), **exc.details}

    if exc.status_code >= 500:
        logger.error(f"Error: {exc.message}", metadata=metadata)
    else:
        logger.warning(f"Error: {exc.message}", metadata=metadata)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details}
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """Handler for FastAPI HTTPException"""
    logger.warning(
        f"HTTPException: {exc.detail}",
        metadata=_request_metadata(request, "http_exception", exc.status_code)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for request body/query validation failures"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "details": jsonable_errors(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last-resort handler so unexpected failures surface as 500"""
    logger.error(
        f"Unhandled error: {exc}",
        error=exc,
        metadata=_request_metadata(request, "unhandled_exception", 500)
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
