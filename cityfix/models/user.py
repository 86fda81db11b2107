"""
User model as stored by the user service
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cityfix.models.report import utc_now


class User(BaseModel):
    """Registered user. `reports_count` is owned by the counter updater."""

    id: int
    username: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    reports_count: Optional[int] = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
