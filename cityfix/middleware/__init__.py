"""
Middleware modules for the CityFix services
"""

from .auth import AuthFilterMiddleware
from .correlation_id import CorrelationIdMiddleware

__all__ = ["AuthFilterMiddleware", "CorrelationIdMiddleware"]
