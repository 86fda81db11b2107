"""
Models module initialization
"""

from .audit_log import AuditLog
from .report import Report
from .user import User

__all__ = [
    "AuditLog",
    "Report",
    "User",
]
