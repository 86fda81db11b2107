"""
Report service containing business logic layer
"""

from typing import List, Optional

from cityfix.core.errors import AuthorizationError, NotFoundError
from cityfix.core.logger import logger
from cityfix.messaging.envelope import AuditEvent, ReportCreatedEvent, utc_now
from cityfix.messaging.publisher import AuditEventPublisher, ReportEventPublisher
from cityfix.models.report import Report
from cityfix.repositories.report import ReportRepository
from cityfix.schemas.report import ReportCreate, ReportUpdate
from cityfix.security.identity import Identity

AUDIT_EVENT_TYPE = "REPORT"
ENTITY_TYPE = "Report"


class ReportService:
    """Service layer for report business logic"""

    def __init__(
        self,
        repository: ReportRepository,
        report_publisher: ReportEventPublisher,
        audit_publisher: AuditEventPublisher,
    ):
        self.repository = repository
        self.report_publisher = report_publisher
        self.audit_publisher = audit_publisher

    async def create_report(
        self,
        data: ReportCreate,
        identity: Identity,
        ip_address: Optional[str] = None,
    ) -> Report:
        """
        Store a report, then announce it.

        The report.created publish is load-bearing: if the broker refuses it,
        DeliveryUnavailable propagates to the caller. The audit publish is
        best-effort.
        """
        logger.info(f"Creating new report for user ID: {identity.user_id}", user_id=identity.user_id)

        report = await self.repository.create(data, identity.user_id)
        logger.info(
            f"Report created with ID: {report.id}",
            metadata={"event": "create_report", "report_id": report.id}
        )

        await self.report_publisher.publish_report_created(ReportCreatedEvent(
            report_id=report.id,
            user_id=report.user_id,
            title=report.title,
            status=report.status,
            category=report.category,
            priority=report.priority,
            created_at=report.created_at,
        ))

        await self._audit("report.create", identity, report.id, f"Report created: {report.title}", ip_address)
        return report

    async def get_all_reports(self) -> List[Report]:
        return await self.repository.list_all()

    async def get_report(self, report_id: int) -> Report:
        report = await self.repository.get_by_id(report_id)
        if not report:
            raise NotFoundError(f"Report not found with id: {report_id}")
        return report

    async def _get_owned(self, report_id: int, identity: Identity, verb: str) -> Report:
        report = await self.get_report(report_id)
        if report.user_id != identity.user_id:
            logger.warning(
                f"User {identity.user_id} attempted to {verb} report {report_id} owned by user {report.user_id}",
                user_id=identity.user_id,
            )
            raise AuthorizationError(f"You can only {verb} your own reports")
        return report

    async def update_report(
        self,
        report_id: int,
        data: ReportUpdate,
        identity: Identity,
        ip_address: Optional[str] = None,
    ) -> Report:
        await self._get_owned(report_id, identity, "update")

        updated = await self.repository.update(report_id, data)
        if updated is None:
            raise NotFoundError(f"Report not found with id: {report_id}")

        logger.info(
            f"Report ID: {report_id} successfully updated",
            metadata={"event": "update_report", "report_id": report_id}
        )
        await self._audit("report.update", identity, report_id, f"Report updated: {updated.title}", ip_address)
        return updated

    async def delete_report(
        self,
        report_id: int,
        identity: Identity,
        ip_address: Optional[str] = None,
    ) -> None:
        report = await self._get_owned(report_id, identity, "delete")

        if not await self.repository.delete(report_id):
            raise NotFoundError(f"Report not found with id: {report_id}")

        logger.info(
            f"Report ID: {report_id} successfully deleted",
            metadata={"event": "delete_report", "report_id": report_id}
        )
        await self._audit("report.delete", identity, report_id, f"Report deleted: {report.title}", ip_address)

    async def _audit(
        self,
        action: str,
        identity: Identity,
        report_id: int,
        details: str,
        ip_address: Optional[str],
    ) -> None:
        await self.audit_publisher.publish_audit(action, AuditEvent(
            event_type=AUDIT_EVENT_TYPE,
            user_id=identity.user_id,
            username=identity.username,
            entity_type=ENTITY_TYPE,
            entity_id=report_id,
            action=action,
            details=details,
            ip_address=ip_address,
            timestamp=utc_now(),
        ))
