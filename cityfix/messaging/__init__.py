"""
Event publishing and consumption over a topic broker
"""

from .consumer import DeliveryContext, DeliveryState, MessageConsumer
from .envelope import AuditEvent, EventEnvelope, ReportCreatedEvent
from .i_message_broker import IMessageBroker
from .message_broker_factory import MessageBrokerFactory
from .publisher import AuditEventPublisher, EventPublisher, PublishPolicy, ReportEventPublisher
from .topology import BrokerTopology, topology_for

__all__ = [
    "AuditEvent",
    "AuditEventPublisher",
    "BrokerTopology",
    "DeliveryContext",
    "DeliveryState",
    "EventEnvelope",
    "EventPublisher",
    "IMessageBroker",
    "MessageBrokerFactory",
    "MessageConsumer",
    "PublishPolicy",
    "ReportCreatedEvent",
    "ReportEventPublisher",
    "topology_for",
]
