"""
Repositories module initialization
"""

from .audit_log import AuditLogRepository
from .report import ReportRepository
from .sequences import SequenceGenerator
from .user import UserRepository

__all__ = [
    "AuditLogRepository",
    "ReportRepository",
    "SequenceGenerator",
    "UserRepository",
]
