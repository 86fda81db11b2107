"""
API module initialization
"""

from . import health, logs, reports, users

__all__ = ["health", "logs", "reports", "users"]
