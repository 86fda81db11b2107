"""
Event publishers

EventPublisher carries an explicit PublishPolicy:
- LOAD_BEARING: a failed publish fails the triggering operation
- BEST_EFFORT: a failed publish is logged and swallowed

ReportEventPublisher and AuditEventPublisher bind the policy, exchange and
routing key for the two event families.
"""

import uuid
from enum import Enum
from typing import Optional

from cityfix.core.config import Config
from cityfix.core.errors import DeliveryUnavailable, ErrorResponse
from cityfix.core.logger import logger
from cityfix.core.context import get_correlation_id
from .envelope import AuditEvent, EventEnvelope, ReportCreatedEvent
from .i_message_broker import IMessageBroker
from .topology import validate_routing_key


class PublishPolicy(str, Enum):
    LOAD_BEARING = "load_bearing"
    BEST_EFFORT = "best_effort"


class EventPublisher:
    """Publishes envelopes to a topic exchange under one policy"""

    def __init__(self, broker: IMessageBroker, policy: PublishPolicy):
        self.broker = broker
        self.policy = policy

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        envelope: EventEnvelope,
        correlation_id: Optional[str] = None,
    ) -> bool:
        """
        Publish an envelope and wait for the broker to accept it.

        Args:
            exchange: Target exchange name
            routing_key: Dot-separated routing key (no wildcards)
            envelope: Event to send
            correlation_id: Defaults to the current request's correlation ID

        Returns:
            True if accepted by the broker, False if a best-effort publish failed

        Raises:
            DeliveryUnavailable: a load-bearing publish failed
        """
        message_id = str(uuid.uuid4())
        correlation_id = correlation_id or get_correlation_id()
        metadata = {
            "exchange": exchange,
            "routingKey": routing_key,
            "eventType": envelope.event_type,
            "messageId": message_id,
            "policy": self.policy.value,
        }

        try:
            validate_routing_key(routing_key)
            await self.broker.publish(
                exchange,
                routing_key,
                envelope.to_json(),
                message_id=message_id,
                correlation_id=correlation_id,
            )
        except Exception as e:
            if self.policy is PublishPolicy.LOAD_BEARING:
                logger.error(
                    f"Failed to publish {routing_key}",
                    correlation_id=correlation_id,
                    error=e,
                    metadata=metadata,
                )
                if isinstance(e, ErrorResponse):
                    raise
                raise DeliveryUnavailable(
                    "Failed to publish event", details={"reason": str(e)}
                ) from e

            logger.warning(
                f"Best-effort publish of {routing_key} dropped: {e}",
                correlation_id=correlation_id,
                metadata=metadata,
            )
            return False

        logger.info(f"Published event: {routing_key}", correlation_id=correlation_id, metadata=metadata)
        return True


class ReportEventPublisher:
    """report.created is load-bearing: counters depend on it"""

    def __init__(self, broker: IMessageBroker, cfg: Config):
        self.publisher = EventPublisher(broker, PublishPolicy.LOAD_BEARING)
        self.exchange = cfg.rabbitmq_exchange_reports
        self.routing_key = cfg.rabbitmq_routing_key_report_created

    async def publish_report_created(self, event: ReportCreatedEvent) -> bool:
        return await self.publisher.publish(self.exchange, self.routing_key, event)


class AuditEventPublisher:
    """Audit events are best-effort: they never fail the business operation"""

    def __init__(self, broker: IMessageBroker, cfg: Config):
        self.publisher = EventPublisher(broker, PublishPolicy.BEST_EFFORT)
        self.exchange = cfg.rabbitmq_exchange_audit

    async def publish_audit(self, action: str, event: AuditEvent) -> bool:
        return await self.publisher.publish(self.exchange, f"audit.{action}", event)
