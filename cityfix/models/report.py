"""
Report model as stored by the report service
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_STATUS = "OPEN"
DEFAULT_PRIORITY = "MEDIUM"


def utc_now():
    """Helper function for Pydantic default_factory to get current UTC time"""
    return datetime.now(timezone.utc)


class Report(BaseModel):
    """A citizen-submitted issue report"""

    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    status: str = DEFAULT_STATUS
    category: Optional[str] = None
    priority: str = DEFAULT_PRIORITY
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
