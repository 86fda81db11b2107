"""
Audit Sink
Persists every audit.* envelope as an audit log row
"""

from cityfix.core.logger import logger
from cityfix.messaging.consumer import DeliveryContext
from cityfix.messaging.envelope import AuditEvent, utc_now
from cityfix.models.audit_log import AuditLog
from cityfix.repositories.audit_log import AuditLogRepository


class AuditSink:
    """
    Copies each audit envelope into a new row. Redelivered envelopes produce
    additional rows: a duplicate audit entry is preferred over a lost one.
    """

    def __init__(self, repository: AuditLogRepository):
        self.repository = repository

    async def on_audit_event(self, event: AuditEvent, context: DeliveryContext) -> None:
        """
        Handle one audit envelope

        Args:
            event: Decoded audit envelope
            context: Delivery metadata (message id, redelivery flag)

        Raises:
            Exception: persistence failures propagate so the message is requeued
        """
        logger.info(
            f"Received AuditEvent: type={event.event_type}, user={event.username}, action={event.action}",
            correlation_id=context.correlation_id,
            metadata={"messageId": context.message_id, "redelivered": context.redelivered},
        )

        entry = AuditLog(
            event_type=event.event_type,
            user_id=event.user_id,
            username=event.username,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            details=event.details,
            ip_address=event.ip_address,
            created_at=event.timestamp or utc_now(),
        )

        try:
            saved = await self.repository.create(entry)
        except Exception as e:
            logger.error(
                f"Failed to save audit log: {e}",
                correlation_id=context.correlation_id,
                error=e,
                metadata={"messageId": context.message_id, "action": event.action},
            )
            raise

        logger.info(
            f"Audit log saved: {event.event_type} - {event.action} by user {event.username}",
            correlation_id=context.correlation_id,
            metadata={"auditLogId": saved.id},
        )
