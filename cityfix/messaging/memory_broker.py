"""
In-process topic broker

Implements IMessageBroker with the same routing, requeue and dead-letter
semantics as the RabbitMQ topology (topic matching, nack/requeue, quorum
delivery limits, dead-letter exchanges). Used for single-process local runs
(MESSAGE_BROKER_TYPE=memory) and by the test suite.
"""

import asyncio
import logging
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

from cityfix.core.errors import DeliveryUnavailable
from .i_message_broker import IMessageBroker, MessageCallback
from .topology import BindingSpec, BrokerTopology, ExchangeSpec, QueueSpec

logger = logging.getLogger(__name__)


class InMemoryMessage:
    """A single delivery, mirroring the aio-pika IncomingMessage surface"""

    def __init__(
        self,
        broker: "InMemoryBroker",
        queue: str,
        body: bytes,
        message_id: str,
        correlation_id: Optional[str],
        headers: Dict[str, Any],
        exchange: str,
        routing_key: str,
        delivery_count: int = 0,
    ):
        self.broker = broker
        self.queue = queue
        self.body = body
        self.message_id = message_id
        self.correlation_id = correlation_id
        self.headers = headers
        self.exchange = exchange
        self.routing_key = routing_key
        self.delivery_count = delivery_count
        self.outcome: Optional[str] = None

    @property
    def redelivered(self) -> bool:
        return self.delivery_count > 0

    def _settle(self, outcome: str) -> None:
        if self.outcome is not None:
            raise RuntimeError(f"Message {self.message_id} already settled ({self.outcome})")
        self.outcome = outcome

    async def ack(self) -> None:
        self._settle("ack")
        self.broker.acked[self.queue].append(self)

    async def nack(self, requeue: bool = True) -> None:
        self._settle("nack")
        self.broker._return(self, requeue)

    async def reject(self, requeue: bool = False) -> None:
        self._settle("reject")
        self.broker._return(self, requeue)


class InMemoryBroker(IMessageBroker):
    """Topic broker living inside the current event loop"""

    def __init__(self):
        self.exchanges: Dict[str, ExchangeSpec] = {}
        self.queues: Dict[str, QueueSpec] = {}
        self.bindings: List[BindingSpec] = []
        self.messages: Dict[str, Deque[InMemoryMessage]] = defaultdict(deque)
        self.acked: Dict[str, List[InMemoryMessage]] = defaultdict(list)
        self.dropped: List[InMemoryMessage] = []
        self._ready: Dict[str, asyncio.Event] = {}
        self._is_connected = False

    async def connect(self) -> None:
        self._is_connected = True
        logger.info("In-memory broker ready")

    async def declare_topology(self, topology: BrokerTopology) -> None:
        for spec in topology.exchanges:
            existing = self.exchanges.get(spec.name)
            if existing is not None and existing != spec:
                raise ValueError(f"Exchange {spec.name} redeclared with different settings")
            self.exchanges[spec.name] = spec

        for spec in topology.queues:
            existing = self.queues.get(spec.name)
            if existing is not None and existing != spec:
                raise ValueError(f"Queue {spec.name} redeclared with different settings")
            self.queues[spec.name] = spec

        for binding in topology.bindings:
            if binding not in self.bindings:
                self.bindings.append(binding)

    def route(self, exchange: str, routing_key: str) -> List[str]:
        if exchange == "":
            return [routing_key] if routing_key in self.queues else []
        topology = BrokerTopology(
            exchanges=tuple(self.exchanges.values()),
            queues=tuple(self.queues.values()),
            bindings=tuple(self.bindings),
        )
        return topology.route(exchange, routing_key)

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
        if not self._is_connected:
            raise DeliveryUnavailable("Message broker is not connected", details={"exchange": exchange})
        if exchange != "" and exchange not in self.exchanges:
            raise DeliveryUnavailable(
                f"Exchange not found: {exchange}", details={"exchange": exchange}
            )

        queues = self.route(exchange, routing_key)
        if not queues:
            logger.debug(f"Unroutable message dropped: {exchange}/{routing_key}")

        # each matching queue receives its own copy
        for queue in queues:
            self._enqueue(InMemoryMessage(
                broker=self,
                queue=queue,
                body=body,
                message_id=message_id,
                correlation_id=correlation_id,
                headers=dict(headers or {}),
                exchange=exchange,
                routing_key=routing_key,
            ))

    def _enqueue(self, message: InMemoryMessage) -> None:
        self.messages[message.queue].append(message)
        self._event(message.queue).set()

    def _event(self, queue: str) -> asyncio.Event:
        if queue not in self._ready:
            self._ready[queue] = asyncio.Event()
        return self._ready[queue]

    def _return(self, message: InMemoryMessage, requeue: bool) -> None:
        spec = self.queues.get(message.queue)
        returns = message.delivery_count + 1

        over_limit = (
            spec is not None
            and spec.delivery_limit is not None
            and returns > spec.delivery_limit
        )
        if requeue and not over_limit:
            self._enqueue(InMemoryMessage(
                broker=self,
                queue=message.queue,
                body=message.body,
                message_id=message.message_id,
                correlation_id=message.correlation_id,
                headers={**message.headers, "x-delivery-count": returns},
                exchange=message.exchange,
                routing_key=message.routing_key,
                delivery_count=returns,
            ))
            return

        self._dead_letter(message, spec)

    def _dead_letter(self, message: InMemoryMessage, spec: Optional[QueueSpec]) -> None:
        if spec is None or not spec.dead_letter_exchange:
            logger.warning(f"Message {message.message_id} dropped from {message.queue}")
            self.dropped.append(message)
            return

        headers = {**message.headers, "x-first-death-queue": message.queue}
        for queue in self.route(spec.dead_letter_exchange, spec.name):
            self._enqueue(InMemoryMessage(
                broker=self,
                queue=queue,
                body=message.body,
                message_id=message.message_id,
                correlation_id=message.correlation_id,
                headers=headers,
                exchange=spec.dead_letter_exchange,
                routing_key=spec.name,
            ))

    async def consume(self, queue_name: str, callback: MessageCallback) -> None:
        if queue_name not in self.queues:
            raise ValueError(f"Queue not declared: {queue_name}")

        logger.info(f"Message consumer started - listening on queue: {queue_name}")
        ready = self._event(queue_name)
        while True:
            pending = self.messages[queue_name]
            if not pending:
                ready.clear()
                await ready.wait()
                continue
            await self._deliver(pending.popleft(), callback)

    async def _deliver(self, message: InMemoryMessage, callback: MessageCallback) -> None:
        try:
            await callback(message)
        finally:
            if message.outcome is None:
                # same as a channel closing with the delivery unacknowledged
                logger.warning(f"Message {message.message_id} left unsettled on {message.queue}, requeueing")
                message.outcome = "returned"
                self._return(message, requeue=True)

    async def drain(self, queue_name: str, callback: MessageCallback, max_deliveries: int = 100) -> int:
        """
        Deliver queued messages until the queue is empty or `max_deliveries`
        is reached. Returns the number of deliveries made.
        """
        delivered = 0
        pending = self.messages[queue_name]
        while pending and delivered < max_deliveries:
            await self._deliver(pending.popleft(), callback)
            delivered += 1
        return delivered

    def pending(self, queue_name: str) -> int:
        return len(self.messages[queue_name])

    async def disconnect(self) -> None:
        self._is_connected = False
        logger.info("In-memory broker stopped")

    def is_healthy(self) -> bool:
        return self._is_connected
