"""Broker adapter factory (BROKER_ADAPTER=protean|fake, BROKER_NAME)."""

import os

from order_management.broker.port import BrokerPort

_current_broker: BrokerPort | None = None


def get_broker() -> BrokerPort:
    """Return the configured broker adapter (singleton). Defaults to the domain's Protean broker."""
    global _current_broker
    if _current_broker is None:
        adapter = os.environ.get("BROKER_ADAPTER", "protean")
        if adapter == "protean":
            from order_management.broker.protean_adapter import ProteanBroker

            _current_broker = ProteanBroker(os.environ.get("BROKER_NAME", "default"))
        elif adapter == "fake":
            from order_management.broker.fake_adapter import FakeBroker

            _current_broker = FakeBroker()
        else:
            raise ValueError(f"Unknown broker adapter: {adapter}")
    return _current_broker


def set_broker(broker: BrokerPort) -> None:
    global _current_broker
    _current_broker = broker


def reset_broker() -> None:
    global _current_broker
    _current_broker = None
