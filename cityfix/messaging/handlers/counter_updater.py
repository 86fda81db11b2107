"""
Counter Updater
Increments a user's reports counter when a report.created event arrives
"""

from cityfix.core.logger import logger
from cityfix.messaging.consumer import DeliveryContext
from cityfix.messaging.envelope import ReportCreatedEvent
from cityfix.repositories.user import UserRepository


class CounterUpdater:
    """
    Each attempt re-reads the stored counter before adding one, so a retried
    delivery never carries an increment from a failed attempt. A message
    redelivered after a successful save is still counted twice; exactly-once
    counting would need deduplication by message id.
    """

    def __init__(self, repository: UserRepository):
        self.repository = repository

    async def on_report_created(self, event: ReportCreatedEvent, context: DeliveryContext) -> None:
        logger.info(
            f"Received ReportCreatedEvent for user counter: userId={event.user_id}, reportId={event.report_id}",
            correlation_id=context.correlation_id,
            metadata={"messageId": context.message_id, "redelivered": context.redelivered},
        )

        try:
            user = await self.repository.get_by_id(event.user_id)

            if user is None:
                # permanent mismatch: acknowledge and drop
                logger.warning(
                    f"User not found with id={event.user_id}, cannot update counter",
                    correlation_id=context.correlation_id,
                    metadata={"reportId": event.report_id},
                )
                return

            current = user.reports_count or 0
            await self.repository.update_fields(user.id, {"reports_count": current + 1})

        except Exception as e:
            logger.error(
                f"Failed to update reports counter for userId={event.user_id}",
                correlation_id=context.correlation_id,
                error=e,
                metadata={"messageId": context.message_id},
            )
            raise

        logger.info(
            f"Updated reports counter for userId={event.user_id}: {current} -> {current + 1}",
            correlation_id=context.correlation_id,
        )
