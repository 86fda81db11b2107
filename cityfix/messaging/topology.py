"""
Broker topology: exchanges, durable queues and the bindings between them

A topology is declared once per service at startup. Declaring the same
topology again must not create duplicate resources, so every collection here
is de-duplicated and order-preserving.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from cityfix.core.config import Config
from cityfix.core.errors import ValidationError

TOPIC = "topic"
DEAD_LETTER_SUFFIX = ".dead"


@dataclass(frozen=True)
class ExchangeSpec:
    name: str
    type: str = TOPIC
    durable: bool = True


@dataclass(frozen=True)
class QueueSpec:
    name: str
    durable: bool = True
    dead_letter_exchange: Optional[str] = None
    delivery_limit: Optional[int] = None

    @property
    def arguments(self) -> Dict[str, object]:
        """AMQP queue arguments implementing the redelivery policy"""
        args: Dict[str, object] = {}
        if self.delivery_limit is not None:
            # Only quorum queues count deliveries
            args["x-queue-type"] = "quorum"
            args["x-delivery-limit"] = self.delivery_limit
        if self.dead_letter_exchange:
            args["x-dead-letter-exchange"] = self.dead_letter_exchange
            args["x-dead-letter-routing-key"] = self.name
        return args


@dataclass(frozen=True)
class BindingSpec:
    exchange: str
    queue: str
    pattern: str


def _unique(items: Iterable) -> Tuple:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class BrokerTopology:
    exchanges: Tuple[ExchangeSpec, ...] = field(default_factory=tuple)
    queues: Tuple[QueueSpec, ...] = field(default_factory=tuple)
    bindings: Tuple[BindingSpec, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "exchanges", _unique(self.exchanges))
        object.__setattr__(self, "queues", _unique(self.queues))
        object.__setattr__(self, "bindings", _unique(self.bindings))

        exchange_names = {e.name for e in self.exchanges}
        queue_names = {q.name for q in self.queues}
        for binding in self.bindings:
            if binding.exchange not in exchange_names:
                raise ValueError(f"Binding references undeclared exchange: {binding.exchange}")
            if binding.queue not in queue_names:
                raise ValueError(f"Binding references undeclared queue: {binding.queue}")
            validate_routing_key(binding.pattern, allow_wildcards=True)

    def merge(self, other: "BrokerTopology") -> "BrokerTopology":
        return BrokerTopology(
            exchanges=self.exchanges + other.exchanges,
            queues=self.queues + other.queues,
            bindings=self.bindings + other.bindings,
        )

    def queue(self, name: str) -> Optional[QueueSpec]:
        return next((q for q in self.queues if q.name == name), None)

    def route(self, exchange: str, routing_key: str) -> List[str]:
        """Queues a message published to `exchange` with `routing_key` lands in"""
        matched = [
            b.queue for b in self.bindings
            if b.exchange == exchange and routing_key_matches(b.pattern, routing_key)
        ]
        return list(dict.fromkeys(matched))


def validate_routing_key(routing_key: str, allow_wildcards: bool = False) -> None:
    """
    Check a dot-separated routing key (or binding pattern).

    Raises:
        ValidationError: empty key, empty word, or wildcard in a publish key
    """
    if not routing_key:
        raise ValidationError("Routing key must not be empty")

    for word in routing_key.split("."):
        if not word:
            raise ValidationError(f"Routing key has an empty segment: {routing_key!r}")
        if word in ("*", "#"):
            if not allow_wildcards:
                raise ValidationError(f"Wildcards are not allowed in routing keys: {routing_key!r}")
        elif "*" in word or "#" in word:
            raise ValidationError(f"Wildcards must occupy a whole segment: {routing_key!r}")


def routing_key_matches(pattern: str, routing_key: str) -> bool:
    """
    AMQP topic matching.

    `*` matches exactly one word, `#` matches zero or more words.
    """
    return _match(pattern.split("."), routing_key.split("."))


def _match(pattern: List[str], words: List[str]) -> bool:
    if not pattern:
        return not words

    head, rest = pattern[0], pattern[1:]
    if head == "#":
        # try consuming 0..n words
        return any(_match(rest, words[i:]) for i in range(len(words) + 1))
    if not words:
        return False
    if head == "*" or head == words[0]:
        return _match(rest, words[1:])
    return False


def _owned_queue(name: str, cfg: Config) -> QueueSpec:
    return QueueSpec(
        name=name,
        dead_letter_exchange=cfg.rabbitmq_dead_letter_exchange,
        delivery_limit=cfg.rabbitmq_delivery_limit,
    )


def _with_dead_letters(topology: BrokerTopology, cfg: Config) -> BrokerTopology:
    """Add the dead-letter exchange and one parking queue per owned queue"""
    dlx = cfg.rabbitmq_dead_letter_exchange
    if not dlx:
        return topology

    parking = [QueueSpec(name=q.name + DEAD_LETTER_SUFFIX) for q in topology.queues]
    return topology.merge(BrokerTopology(
        exchanges=(ExchangeSpec(dlx),),
        queues=tuple(parking),
        bindings=tuple(
            BindingSpec(dlx, q.name + DEAD_LETTER_SUFFIX, q.name) for q in topology.queues
        ),
    ))


def report_service_topology(cfg: Config) -> BrokerTopology:
    """Report service publishes to both exchanges and owns the report-created queue"""
    queue = _owned_queue(cfg.rabbitmq_queue_report_created, cfg)
    return _with_dead_letters(BrokerTopology(
        exchanges=(ExchangeSpec(cfg.rabbitmq_exchange_reports), ExchangeSpec(cfg.rabbitmq_exchange_audit)),
        queues=(queue,),
        bindings=(BindingSpec(
            cfg.rabbitmq_exchange_reports, queue.name, cfg.rabbitmq_routing_key_report_created
        ),),
    ), cfg)


def user_service_topology(cfg: Config) -> BrokerTopology:
    """User service consumes report.created for counters and publishes audit events"""
    queue = _owned_queue(cfg.rabbitmq_queue_user_counter, cfg)
    return _with_dead_letters(BrokerTopology(
        exchanges=(ExchangeSpec(cfg.rabbitmq_exchange_reports), ExchangeSpec(cfg.rabbitmq_exchange_audit)),
        queues=(queue,),
        bindings=(BindingSpec(
            cfg.rabbitmq_exchange_reports, queue.name, cfg.rabbitmq_routing_key_report_created
        ),),
    ), cfg)


def log_service_topology(cfg: Config) -> BrokerTopology:
    """Log service consumes every audit.* event"""
    queue = _owned_queue(cfg.rabbitmq_queue_audit_logs, cfg)
    return _with_dead_letters(BrokerTopology(
        exchanges=(ExchangeSpec(cfg.rabbitmq_exchange_audit),),
        queues=(queue,),
        bindings=(BindingSpec(cfg.rabbitmq_exchange_audit, queue.name, cfg.rabbitmq_routing_key_audit),),
    ), cfg)


SERVICE_TOPOLOGIES = {
    "report-service": report_service_topology,
    "user-service": user_service_topology,
    "log-service": log_service_topology,
}


def topology_for(service_role: str, cfg: Config) -> BrokerTopology:
    try:
        return SERVICE_TOPOLOGIES[service_role](cfg)
    except KeyError:
        raise ValueError(
            f"Unknown service role: {service_role}. "
            f"Supported roles: {', '.join(SERVICE_TOPOLOGIES)}"
        )
