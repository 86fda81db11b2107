"""Unit tests for ReportService"""
import json
from unittest.mock import AsyncMock

import pytest

from cityfix.core.errors import AuthorizationError, DeliveryUnavailable, NotFoundError
from cityfix.messaging.publisher import AuditEventPublisher, ReportEventPublisher
from cityfix.schemas.report import ReportCreate, ReportUpdate
from cityfix.security.identity import Identity
from cityfix.services.report import ReportService
from fakes import InMemoryReportRepository


@pytest.fixture
def repository():
    return InMemoryReportRepository()


@pytest.fixture
def report_service(repository, broker, test_config):
    return ReportService(
        repository,
        ReportEventPublisher(broker, test_config),
        AuditEventPublisher(broker, test_config),
    )


def _bodies(broker, queue):
    return [json.loads(m.body) for m in broker.messages[queue]]


class TestCreateReport:
    @pytest.mark.asyncio
    async def test_create_publishes_one_report_created_and_one_audit(
        self, report_service, broker, identity
    ):
        # Act
        report = await report_service.create_report(
            ReportCreate(title="Broken light", category="LIGHTING"), identity, "10.0.0.1"
        )

        # Assert
        created = _bodies(broker, "report.created.queue")
        assert len(created) == 1
        assert created[0]["reportId"] == report.id
        assert created[0]["userId"] == 1
        assert created[0]["status"] == "OPEN"
        assert created[0]["priority"] == "MEDIUM"

        audits = broker.messages["audit.logs.queue"]
        assert len(audits) == 1
        assert audits[0].routing_key == "audit.report.create"
        body = json.loads(audits[0].body)
        assert body["entityId"] == report.id
        assert body["entityType"] == "Report"
        assert body["eventType"] == "REPORT"
        assert body["ipAddress"] == "10.0.0.1"
        assert body["details"] == "Report created: Broken light"

    @pytest.mark.asyncio
    async def test_report_created_failure_fails_the_operation(self, repository, test_config, identity):
        # Arrange
        broker = AsyncMock()
        broker.publish.side_effect = ConnectionError("broker down")
        service = ReportService(
            repository, ReportEventPublisher(broker, test_config), AuditEventPublisher(broker, test_config)
        )

        # Act & Assert
        with pytest.raises(DeliveryUnavailable):
            await service.create_report(ReportCreate(title="Pothole"), identity)
        assert broker.publish.await_count == 1

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_the_operation(self, repository, broker, test_config, identity):
        # Arrange: audit exchange refuses, reports exchange accepts
        audit_broker = AsyncMock()
        audit_broker.publish.side_effect = ConnectionError("audit down")
        service = ReportService(
            repository, ReportEventPublisher(broker, test_config), AuditEventPublisher(audit_broker, test_config)
        )

        # Act
        report = await service.create_report(ReportCreate(title="Pothole"), identity)

        # Assert
        assert report.id in repository.reports
        assert len(broker.messages["report.created.queue"]) == 1


class TestReadReports:
    @pytest.mark.asyncio
    async def test_get_missing_report(self, report_service):
        with pytest.raises(NotFoundError):
            await report_service.get_report(99)

    @pytest.mark.asyncio
    async def test_get_all(self, report_service, identity):
        await report_service.create_report(ReportCreate(title="One"), identity)
        await report_service.create_report(ReportCreate(title="Two"), identity)

        reports = await report_service.get_all_reports()

        assert {r.title for r in reports} == {"One", "Two"}


class TestOwnership:
    @pytest.mark.asyncio
    async def test_owner_can_update(self, report_service, broker, identity):
        report = await report_service.create_report(ReportCreate(title="Old"), identity)

        updated = await report_service.update_report(report.id, ReportUpdate(status="IN_PROGRESS"), identity)

        assert updated.status == "IN_PROGRESS"
        assert updated.title == "Old"
        keys = [m.routing_key for m in broker.messages["audit.logs.queue"]]
        assert keys == ["audit.report.create", "audit.report.update"]

    @pytest.mark.asyncio
    async def test_other_user_cannot_update(self, report_service, identity):
        report = await report_service.create_report(ReportCreate(title="Mine"), identity)

        with pytest.raises(AuthorizationError):
            await report_service.update_report(
                report.id, ReportUpdate(title="Theirs"), Identity(user_id=2, username="mallory")
            )

    @pytest.mark.asyncio
    async def test_other_user_cannot_delete(self, report_service, repository, identity):
        report = await report_service.create_report(ReportCreate(title="Mine"), identity)

        with pytest.raises(AuthorizationError):
            await report_service.delete_report(report.id, Identity(user_id=2, username="mallory"))
        assert report.id in repository.reports

    @pytest.mark.asyncio
    async def test_owner_can_delete(self, report_service, repository, broker, identity):
        report = await report_service.create_report(ReportCreate(title="Mine"), identity)

        await report_service.delete_report(report.id, identity)

        assert report.id not in repository.reports
        assert broker.messages["audit.logs.queue"][-1].routing_key == "audit.report.delete"

    @pytest.mark.asyncio
    async def test_delete_missing(self, report_service, identity):
        with pytest.raises(NotFoundError):
            await report_service.delete_report(5, identity)
