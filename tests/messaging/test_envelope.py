"""Tests for event envelopes and their wire format"""
import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from cityfix.core.errors import InvalidEnvelope
from cityfix.messaging.envelope import REPORT_CREATED, AuditEvent, EventEnvelope, ReportCreatedEvent


class TestReportCreatedEvent:
    """Test the report.created envelope"""

    def test_defaults_event_type(self, report_created_event):
        assert report_created_event.event_type == REPORT_CREATED
        assert report_created_event.occurred_at.tzinfo is not None

    def test_wire_format_uses_camel_case(self, report_created_event):
        payload = json.loads(report_created_event.to_json())

        assert payload["eventType"] == "report.created"
        assert payload["reportId"] == 10
        assert payload["userId"] == 1
        assert "report_id" not in payload

    def test_decode_camel_case_payload(self):
        body = json.dumps({
            "eventType": "report.created",
            "reportId": 7,
            "userId": 3,
            "title": "Pothole",
            "status": "OPEN",
            "createdAt": "2025-01-15T10:30:00",
        }).encode()

        event = ReportCreatedEvent.from_json(body)

        assert event.report_id == 7
        assert event.user_id == 3
        assert event.created_at == datetime(2025, 1, 15, 10, 30)

    def test_decode_ignores_unknown_fields(self, report_created_event):
        payload = json.loads(report_created_event.to_json())
        payload["somethingNew"] = "ignored"

        event = ReportCreatedEvent.from_json(json.dumps(payload).encode())

        assert event == report_created_event

    def test_envelope_is_immutable(self, report_created_event):
        with pytest.raises(PydanticValidationError):
            report_created_event.title = "changed"


class TestDecodeFailures:
    """Bodies that cannot become an envelope raise InvalidEnvelope"""

    def test_not_json(self):
        with pytest.raises(InvalidEnvelope) as exc_info:
            ReportCreatedEvent.from_json(b"not json at all")
        assert exc_info.value.details["envelope"] == "ReportCreatedEvent"

    def test_missing_required_field(self):
        body = json.dumps({"eventType": "report.created", "userId": 1}).encode()
        with pytest.raises(InvalidEnvelope):
            ReportCreatedEvent.from_json(body)

    def test_wrong_type(self):
        body = json.dumps({
            "reportId": "abc", "userId": 1, "title": "x", "status": "OPEN"
        }).encode()
        with pytest.raises(InvalidEnvelope):
            ReportCreatedEvent.from_json(body)

    def test_empty_event_type_rejected(self):
        with pytest.raises(InvalidEnvelope):
            EventEnvelope.from_json(b'{"eventType": ""}')


class TestAuditEvent:
    def test_audit_requires_entity_type_and_action(self):
        body = json.dumps({"eventType": "REPORT", "userId": 1}).encode()
        with pytest.raises(InvalidEnvelope):
            AuditEvent.from_json(body)

    def test_audit_round_trip_keeps_ip_address(self, audit_event):
        decoded = AuditEvent.from_json(audit_event.to_json())

        assert decoded.ip_address == "192.168.1.1"
        assert decoded.action == "report.create"
        assert decoded.timestamp is None

    def test_timestamp_serialized_as_iso8601(self, audit_event):
        stamped = audit_event.model_copy(update={"timestamp": datetime(2025, 1, 1, tzinfo=timezone.utc)})
        payload = json.loads(stamped.to_json())
        assert payload["timestamp"].startswith("2025-01-01T00:00:00")
