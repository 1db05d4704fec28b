"""Message broker port used by the outbox relay."""

from abc import ABC, abstractmethod


class DeliveryError(Exception):
    """The broker did not acknowledge an envelope."""


class BrokerPort(ABC):
    @abstractmethod
    def deliver(self, envelope: dict) -> None:
        """Publish ``envelope`` and return only once the broker acknowledged it.

        Raises:
            DeliveryError: the envelope was not acknowledged.
        """
        ...
