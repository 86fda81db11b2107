"""
Audit log model as stored by the log service (append-only)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cityfix.models.report import utc_now


class AuditLog(BaseModel):
    id: Optional[int] = None
    event_type: Optional[str] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    action: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
