"""
Correlation ID Middleware for request tracing
Every request (and every consumed message) carries a correlation ID that is
copied onto outgoing broker messages.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from cityfix.core.config import config
from cityfix.core.context import correlation_id_ctx, get_correlation_id, set_correlation_id

__all__ = ["CorrelationIdMiddleware", "correlation_id_ctx", "get_correlation_id", "set_correlation_id"]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle correlation IDs for request tracing

    - Extracts correlation ID from request headers (or generates a new one)
    - Stores it in context for use throughout the request lifecycle
    - Adds it to response headers
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(
            config.correlation_id_header,
            str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers[config.correlation_id_header] = correlation_id

        return response
