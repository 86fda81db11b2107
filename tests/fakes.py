"""In-memory stand-ins for the MongoDB repositories"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from cityfix.models.audit_log import AuditLog
from cityfix.models.report import DEFAULT_PRIORITY, DEFAULT_STATUS, Report
from cityfix.models.user import User
from cityfix.schemas.report import ReportCreate, ReportUpdate


class InMemoryReportRepository:
    def __init__(self):
        self.reports: Dict[int, Report] = {}
        self._next_id = 0

    async def create(self, data: ReportCreate, user_id: int) -> Report:
        self._next_id += 1
        now = datetime.now(timezone.utc)
        report = Report(
            id=self._next_id,
            user_id=user_id,
            title=data.title,
            description=data.description,
            status=DEFAULT_STATUS,
            category=data.category,
            priority=data.priority or DEFAULT_PRIORITY,
            latitude=data.latitude,
            longitude=data.longitude,
            created_at=now,
            updated_at=now,
        )
        self.reports[report.id] = report
        return report

    async def get_by_id(self, report_id: int) -> Optional[Report]:
        return self.reports.get(report_id)

    async def list_all(self) -> List[Report]:
        return sorted(self.reports.values(), key=lambda r: r.created_at, reverse=True)

    async def update(self, report_id: int, data: ReportUpdate) -> Optional[Report]:
        report = self.reports.get(report_id)
        if report is None:
            return None
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        changes["updated_at"] = datetime.now(timezone.utc)
        self.reports[report_id] = report.model_copy(update=changes)
        return self.reports[report_id]

    async def delete(self, report_id: int) -> bool:
        return self.reports.pop(report_id, None) is not None


class InMemoryUserRepository:
    def __init__(self, users: Optional[List[User]] = None):
        self.users: Dict[int, User] = {user.id: user for user in users or []}
        self.updates = 0

    async def next_id(self) -> int:
        return max(self.users, default=0) + 1

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    async def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    async def exists_by_username(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    async def exists_by_email(self, email: str) -> bool:
        return any(u.email == email for u in self.users.values())

    async def create(self, user: User) -> User:
        self.users[user.id] = user
        return user

    async def update_fields(self, user_id: int, changes: dict) -> Optional[User]:
        self.updates += 1
        user = self.users.get(user_id)
        if user is None:
            return None
        self.users[user_id] = user.model_copy(update=changes)
        return self.users[user_id]


class InMemoryAuditLogRepository:
    def __init__(self):
        self.rows: List[AuditLog] = []

    async def create(self, entry: AuditLog) -> AuditLog:
        stored = entry.model_copy(update={"id": len(self.rows) + 1})
        self.rows.append(stored)
        return stored

    def _newest_first(self, rows: List[AuditLog]) -> List[AuditLog]:
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    async def find_recent(self, limit: int) -> List[AuditLog]:
        return self._newest_first(self.rows)[:limit]

    async def find_by_user_id(self, user_id: int) -> List[AuditLog]:
        return self._newest_first([r for r in self.rows if r.user_id == user_id])

    async def find_by_event_type(self, event_type: str) -> List[AuditLog]:
        return self._newest_first([r for r in self.rows if r.event_type == event_type])

    async def find_by_date_range(self, start: datetime, end: datetime) -> List[AuditLog]:
        return self._newest_first([r for r in self.rows if start <= r.created_at <= end])
