"""
Message Broker Factory
Creates the appropriate message broker instance based on configuration
"""

import logging
from typing import Optional

from cityfix.core.config import Config, config as default_config
from .i_message_broker import IMessageBroker
from .memory_broker import InMemoryBroker
from .rabbitmq_broker import RabbitMQBroker

logger = logging.getLogger(__name__)


class MessageBrokerFactory:
    """Factory for creating message broker instances"""

    @staticmethod
    def create(cfg: Optional[Config] = None) -> IMessageBroker:
        """
        Create a message broker instance based on MESSAGE_BROKER_TYPE

        Returns:
            IMessageBroker implementation
        """
        cfg = cfg or default_config
        broker_type = cfg.message_broker_type.lower()

        logger.info(f"Creating message broker: {broker_type}")

        if broker_type == "rabbitmq":
            return RabbitMQBroker(
                cfg.rabbitmq_url,
                prefetch_count=cfg.rabbitmq_prefetch_count,
                heartbeat=cfg.rabbitmq_heartbeat,
            )

        elif broker_type == "memory":
            return InMemoryBroker()

        else:
            raise ValueError(
                f"Unsupported message broker type: {broker_type}. "
                f"Supported types: rabbitmq, memory"
            )
