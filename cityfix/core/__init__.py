"""
Core module initialization
"""

from .config import config
from .errors import (
    AuthenticationError,
    AuthorizationError,
    DeliveryUnavailable,
    ErrorResponse,
    ErrorResponseModel,
    HandlerFailure,
    InvalidEnvelope,
    NotFoundError,
    ValidationError,
)
from .logger import logger

__all__ = [
    "config",
    "logger",
    "ErrorResponse",
    "ErrorResponseModel",
    "ValidationError",
    "InvalidEnvelope",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "DeliveryUnavailable",
    "HandlerFailure",
]
