"""
Audit log queries for the log retrieval endpoint
"""

from datetime import datetime, timezone
from typing import List, Optional

from cityfix.core.errors import ValidationError
from cityfix.models.audit_log import AuditLog
from cityfix.repositories.audit_log import AuditLogRepository

DEFAULT_LIMIT = 100


def _as_utc(value: datetime) -> datetime:
    """Naive query datetimes are read as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuditLogService:
    def __init__(self, repository: AuditLogRepository):
        self.repository = repository

    async def get_logs(
        self,
        limit: int = DEFAULT_LIMIT,
        user_id: Optional[int] = None,
        event_type: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AuditLog]:
        """
        Newest first. Filters are exclusive, checked in order: user id,
        event type, date range, then the most recent `limit` rows.
        """
        if user_id is not None:
            return await self.repository.find_by_user_id(user_id)
        if event_type:
            return await self.repository.find_by_event_type(event_type)
        if start is not None or end is not None:
            if start is None or end is None:
                raise ValidationError("Both start and end are required for a date range")
            start, end = _as_utc(start), _as_utc(end)
            if start > end:
                raise ValidationError("start must not be after end")
            return await self.repository.find_by_date_range(start, end)
        return await self.repository.find_recent(limit)
