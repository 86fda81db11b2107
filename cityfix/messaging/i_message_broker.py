"""
Message Broker Interface
Defines the contract for all message broker implementations (RabbitMQ, in-memory)
so publishers and consumers do not depend on the transport.

Messages handed to a consume callback expose the aio-pika IncomingMessage
surface used by the consumer: `body`, `message_id`, `correlation_id`,
`headers`, `redelivered`, `routing_key`, and the awaitables `ack()`,
`nack(requeue=...)` and `reject(requeue=...)`.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

from .topology import BrokerTopology

MessageCallback = Callable[[Any], Awaitable[Any]]


class IMessageBroker(ABC):
    """Abstract base class for message broker implementations"""

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the message broker
        """

    @abstractmethod
    async def declare_topology(self, topology: BrokerTopology) -> None:
        """
        Declare exchanges, queues and bindings. Must be idempotent.
        """

    @abstractmethod
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
        """
        Publish a persistent message and wait for the broker to accept it.

        Raises:
            DeliveryUnavailable: broker unreachable or publish refused
        """

    @abstractmethod
    async def consume(self, queue_name: str, callback: MessageCallback) -> None:
        """
        Consume a queue until cancelled, awaiting `callback(message)` for each
        delivery. The callback settles the message (ack/nack/reject).

        Args:
            queue_name: Name of the queue to consume from
            callback: Async callback receiving the raw incoming message
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close connection to the message broker
        """

    @abstractmethod
    def is_healthy(self) -> bool:
        """
        Check if the broker connection is healthy

        Returns:
            True if connected and ready, False otherwise
        """
