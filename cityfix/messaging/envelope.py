"""
Event envelopes exchanged between services

Envelopes are immutable once built. On the wire they are JSON objects with
camelCase field names and ISO-8601 timestamps; unknown fields are ignored so
consumers tolerate producers with a compatible but different schema.
"""

from datetime import datetime, timezone
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from cityfix.core.errors import InvalidEnvelope

REPORT_CREATED = "report.created"

E = TypeVar("E", bound="EventEnvelope")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventEnvelope(BaseModel):
    """Base envelope: a discriminator plus the producer-side timestamp"""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    event_type: str = Field(..., min_length=1)
    occurred_at: datetime = Field(default_factory=utc_now)

    def to_json(self) -> bytes:
        """Serialize to the wire format"""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_json(cls: Type[E], body: bytes) -> E:
        """
        Decode a message body into this envelope type.

        Raises:
            InvalidEnvelope: body is not JSON or does not match the schema
        """
        try:
            return cls.model_validate_json(body)
        except (PydanticValidationError, ValueError) as e:
            raise InvalidEnvelope(
                f"Cannot decode {cls.__name__}",
                details={"envelope": cls.__name__, "reason": str(e)},
            ) from e


class ReportCreatedEvent(EventEnvelope):
    """Published by the report service after a report is stored"""

    event_type: str = REPORT_CREATED
    report_id: int
    user_id: int
    title: str
    status: str
    category: Optional[str] = None
    priority: Optional[str] = None
    created_at: Optional[datetime] = None


class AuditEvent(EventEnvelope):
    """
    One mutating action performed in any service.

    `event_type` names the producing domain (REPORT, USER), `action` the
    operation; the routing key is `audit.<action>`.
    """

    user_id: Optional[int] = None
    username: Optional[str] = None
    entity_type: str
    entity_id: Optional[int] = None
    action: str = Field(..., min_length=1)
    details: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None
