"""
Dependencies module initialization
"""

from .auth import get_identity, require_identity
from .services import (
    get_audit_log_service,
    get_broker,
    get_client_ip,
    get_report_service,
    get_token_provider,
    get_user_service,
)

__all__ = [
    "get_identity",
    "require_identity",
    "get_audit_log_service",
    "get_broker",
    "get_client_ip",
    "get_report_service",
    "get_token_provider",
    "get_user_service",
]
