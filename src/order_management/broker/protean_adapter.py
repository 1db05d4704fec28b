"""Broker adapter that publishes envelopes through a Protean broker.

The broker is the one configured under ``[brokers.<name>]`` in
``domain.toml``: the inline broker by default, Redis Streams in production.
A returned message id is the acknowledgement.
"""

import structlog
from protean.utils.globals import current_domain

from order_management.broker.port import BrokerPort, DeliveryError

logger = structlog.get_logger(__name__)

EVENT_STREAM = "fulfillment.order_management.v1.events"


class ProteanBroker(BrokerPort):
    def __init__(self, broker_name: str = "default", stream: str = EVENT_STREAM) -> None:
        self.broker_name = broker_name
        self.stream = stream

    def deliver(self, envelope: dict) -> None:
        broker = current_domain.brokers[self.broker_name]
        try:
            message_id = broker.publish(self.stream, envelope)
        except Exception as exc:
            raise DeliveryError(f"Publish to {self.stream} failed: {exc}") from exc
        if not message_id:
            raise DeliveryError(f"No message id returned for envelope {envelope['id']}")
        logger.debug("Envelope published", stream=self.stream, message_id=message_id, envelope_id=envelope["id"])
