"""
Services module initialization
"""

from .audit_log import AuditLogService
from .report import ReportService
from .user import UserService

__all__ = [
    "AuditLogService",
    "ReportService",
    "UserService",
]
