"""
RabbitMQ Broker Implementation
Implements the IMessageBroker interface for RabbitMQ using aio-pika for async support
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aio_pika
from aio_pika.abc import (
    AbstractChannel,
    AbstractExchange,
    AbstractQueue,
    AbstractRobustConnection,
)

from cityfix.core.errors import DeliveryUnavailable
from .i_message_broker import IMessageBroker, MessageCallback
from .topology import BrokerTopology

logger = logging.getLogger(__name__)


class RabbitMQBroker(IMessageBroker):
    """RabbitMQ implementation of IMessageBroker with publisher confirms"""

    def __init__(self, rabbitmq_url: str, prefetch_count: int = 10, heartbeat: int = 600):
        """
        Initialize RabbitMQ broker

        Args:
            rabbitmq_url: RabbitMQ connection URL
            prefetch_count: Unacknowledged deliveries allowed per consumer
            heartbeat: AMQP heartbeat interval in seconds
        """
        self.rabbitmq_url = rabbitmq_url
        self.prefetch_count = prefetch_count
        self.heartbeat = heartbeat
        self.connection: Optional[AbstractRobustConnection] = None
        self.channel: Optional[AbstractChannel] = None
        self.exchanges: Dict[str, AbstractExchange] = {}
        self.queues: Dict[str, AbstractQueue] = {}
        self._is_connected = False

    async def connect(self) -> None:
        """Connect to RabbitMQ"""
        try:
            logger.info("Connecting to RabbitMQ...")

            self.connection = await aio_pika.connect_robust(
                self.rabbitmq_url,
                heartbeat=self.heartbeat
            )

            # Publisher confirms make publish() wait for broker acceptance
            self.channel = await self.connection.channel(publisher_confirms=True)
            await self.channel.set_qos(prefetch_count=self.prefetch_count)

            self._is_connected = True
            logger.info("RabbitMQ connected successfully")

        except Exception as e:
            logger.error(f"Failed to connect to RabbitMQ: {e}")
            self._is_connected = False
            raise

    def _require_channel(self) -> AbstractChannel:
        if not self.channel or self.channel.is_closed:
            raise DeliveryUnavailable("RabbitMQ channel is not open", details={"broker": "rabbitmq"})
        return self.channel

    async def declare_topology(self, topology: BrokerTopology) -> None:
        """Declare exchanges, durable queues and bindings (all idempotent in AMQP)"""
        channel = self._require_channel()

        for spec in topology.exchanges:
            self.exchanges[spec.name] = await channel.declare_exchange(
                spec.name,
                aio_pika.ExchangeType(spec.type),
                durable=spec.durable,
            )
            logger.info(f"Declared exchange: {spec.name} ({spec.type})")

        for spec in topology.queues:
            self.queues[spec.name] = await channel.declare_queue(
                spec.name,
                durable=spec.durable,
                arguments=spec.arguments or None,
            )
            logger.info(f"Declared queue: {spec.name}")

        for binding in topology.bindings:
            await self.queues[binding.queue].bind(
                self.exchanges[binding.exchange],
                routing_key=binding.pattern,
            )
            logger.info(f"Bound {binding.queue} to {binding.exchange} with {binding.pattern}")

    async def _get_exchange(self, name: str) -> AbstractExchange:
        channel = self._require_channel()
        if name == "":
            return channel.default_exchange
        if name not in self.exchanges:
            self.exchanges[name] = await channel.get_exchange(name, ensure=True)
        return self.exchanges[name]

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        body: bytes,
        *,
        message_id: str,
        correlation_id: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish a persistent JSON message and wait for the publisher confirm"""
        message = aio_pika.Message(
            body=body,
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=message_id,
            correlation_id=correlation_id,
            headers=headers or {},
            timestamp=datetime.now(timezone.utc),
        )

        try:
            target = await self._get_exchange(exchange)
            await target.publish(message, routing_key=routing_key)
        except DeliveryUnavailable:
            raise
        except Exception as e:
            logger.error(f"Publish to {exchange}/{routing_key} failed: {e}")
            raise DeliveryUnavailable(
                "Message broker rejected or could not accept the message",
                details={"exchange": exchange, "routing_key": routing_key, "reason": str(e)},
            ) from e

    async def consume(self, queue_name: str, callback: MessageCallback) -> None:
        """
        Start consuming messages from RabbitMQ

        Messages are not auto-acknowledged; the callback settles each one.
        """
        queue = self.queues.get(queue_name)
        if queue is None:
            channel = self._require_channel()
            queue = await channel.get_queue(queue_name, ensure=True)
            self.queues[queue_name] = queue

        logger.info(f"Message consumer started - listening on queue: {queue_name}")

        async with queue.iterator() as queue_iter:
            async for message in queue_iter:
                await callback(message)

    async def disconnect(self) -> None:
        """Close RabbitMQ connection"""
        try:
            logger.info("Stopping RabbitMQ broker...")

            if self.channel and not self.channel.is_closed:
                await self.channel.close()
                logger.info("Channel closed")

            if self.connection and not self.connection.is_closed:
                await self.connection.close()
                logger.info("RabbitMQ connection closed")

            self._is_connected = False
        except Exception as e:
            logger.error(f"Error closing RabbitMQ connection: {e}")
            raise

    def is_healthy(self) -> bool:
        """Check if broker connection is healthy"""
        return (
            self._is_connected
            and self.connection is not None
            and not self.connection.is_closed
        )
