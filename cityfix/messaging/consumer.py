"""
Queue consumer and redelivery policy

Each delivery moves DELIVERED -> PROCESSING -> ACKED | REQUEUED. A body that
cannot be decoded never reaches PROCESSING and ends DEAD_LETTERED (rejected
without requeue). A handler exception is never acknowledged: the message is
nacked with requeue and the broker redelivers it. Redelivery limits and
dead-lettering are queue arguments declared by the topology, not counters
kept here. If settling itself fails the delivery stays DELIVERED and the
broker hands it out again.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Type, TypeVar

from cityfix.core.errors import HandlerFailure, InvalidEnvelope
from cityfix.core.logger import logger
from cityfix.core.context import set_correlation_id
from .envelope import EventEnvelope
from .i_message_broker import IMessageBroker

E = TypeVar("E", bound=EventEnvelope)


class DeliveryState(str, Enum):
    DELIVERED = "delivered"
    PROCESSING = "processing"
    ACKED = "acked"
    REQUEUED = "requeued"
    DEAD_LETTERED = "dead_lettered"


@dataclass(frozen=True)
class DeliveryContext:
    """Broker metadata handed to handlers alongside the envelope"""

    queue: str
    message_id: Optional[str]
    correlation_id: Optional[str]
    redelivered: bool
    delivery_count: int


Handler = Callable[[E, DeliveryContext], Awaitable[None]]


class MessageConsumer(Generic[E]):
    """One logical consumer per bound queue, processing sequentially"""

    def __init__(
        self,
        broker: IMessageBroker,
        queue_name: str,
        envelope_type: Type[E],
        handler: Handler,
        restart_delay: float = 5.0,
    ):
        self.broker = broker
        self.queue_name = queue_name
        self.envelope_type = envelope_type
        self.handler = handler
        self.restart_delay = restart_delay
        self._task: Optional[asyncio.Task] = None

    def _context(self, message: Any) -> DeliveryContext:
        headers = getattr(message, "headers", None) or {}
        return DeliveryContext(
            queue=self.queue_name,
            message_id=message.message_id,
            correlation_id=message.correlation_id,
            redelivered=bool(message.redelivered),
            delivery_count=int(headers.get("x-delivery-count", 0) or 0),
        )

    async def handle_message(self, message: Any) -> DeliveryState:
        """Apply one delivery and settle it with the broker"""
        context = self._context(message)
        set_correlation_id(context.correlation_id)
        metadata = {
            "queue": self.queue_name,
            "messageId": context.message_id,
            "redelivered": context.redelivered,
            "deliveryCount": context.delivery_count,
        }
        logger.debug(f"Message delivered from {self.queue_name}", metadata=metadata)

        try:
            envelope = self.envelope_type.from_json(message.body)
        except InvalidEnvelope as e:
            logger.error(
                f"Rejecting undecodable message on {self.queue_name}",
                error=e,
                metadata={**metadata, **e.details},
            )
            if not await self._settle(message, "reject", metadata, requeue=False):
                return DeliveryState.DELIVERED
            return DeliveryState.DEAD_LETTERED

        try:
            await self.handler(envelope, context)
        except Exception as e:
            failure = HandlerFailure(self.queue_name, context.message_id, e)
            logger.error(
                "Handler failed, returning message to queue",
                error=failure,
                metadata={**metadata, "eventType": envelope.event_type},
            )
            if not await self._settle(message, "nack", metadata, requeue=True):
                return DeliveryState.DELIVERED
            return DeliveryState.REQUEUED

        if not await self._settle(message, "ack", metadata):
            return DeliveryState.DELIVERED
        logger.debug(f"Message acknowledged on {self.queue_name}", metadata=metadata)
        return DeliveryState.ACKED

    async def _settle(self, message: Any, action: str, metadata: dict, **kwargs) -> bool:
        try:
            await getattr(message, action)(**kwargs)
            return True
        except Exception as e:
            # the broker keeps an unsettled delivery and hands it out again
            logger.error(
                f"Could not {action} message on {self.queue_name}, leaving it unsettled",
                error=e,
                metadata=metadata,
            )
            return False

    async def run(self) -> None:
        """Consume until cancelled, reattaching to the queue after a failure"""
        while True:
            try:
                await self.broker.consume(self.queue_name, self.handle_message)
                return
            except Exception as e:
                logger.error(
                    f"Consumer for {self.queue_name} failed, restarting in {self.restart_delay}s",
                    error=e,
                )
                await asyncio.sleep(self.restart_delay)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name=f"consumer:{self.queue_name}")
            self._task.add_done_callback(self._on_done)
            logger.info(f"Consumer started for queue {self.queue_name}")
        return self._task

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.critical(f"Consumer for {self.queue_name} stopped", error=error)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        logger.info(f"Consumer stopped for queue {self.queue_name}")
