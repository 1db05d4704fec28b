"""Fake broker: records delivered envelopes in memory.

Envelopes whose ``id`` or ``subject`` is listed in ``fail_ids`` are refused.
``hang_seconds`` holds deliveries back so the relay deadline can be
exercised: every delivery when ``hang_ids`` is empty, otherwise only the
listed ones. ``release()`` lets held deliveries go.
"""

import threading

from order_management.broker.port import BrokerPort, DeliveryError


def _matches(envelope: dict, ids: set[str]) -> bool:
    return envelope.get("id") in ids or envelope.get("subject") in ids


class FakeBroker(BrokerPort):
    def __init__(self):
        self.delivered: list[dict] = []
        self.fail_ids: set[str] = set()
        self.fail_all = False
        self.hang_ids: set[str] = set()
        self.hang_seconds = 0.0
        self._lock = threading.Lock()
        self._released = threading.Event()

    def configure(self, fail_ids=None, fail_all: bool = False, hang_seconds: float = 0.0, hang_ids=None):
        """Configure the fake broker behavior for testing."""
        self.fail_ids = set(fail_ids or [])
        self.fail_all = fail_all
        self.hang_seconds = hang_seconds
        self.hang_ids = set(hang_ids or [])
        self._released.clear()

    def release(self) -> None:
        self._released.set()

    def deliver(self, envelope: dict) -> None:
        if self.hang_seconds and (not self.hang_ids or _matches(envelope, self.hang_ids)):
            self._released.wait(self.hang_seconds)
        if self.fail_all or _matches(envelope, self.fail_ids):
            raise DeliveryError(f"Broker refused envelope {envelope.get('id')}")
        with self._lock:
            self.delivered.append(envelope)

    def delivered_types(self) -> list[str]:
        with self._lock:
            return [envelope["type"] for envelope in self.delivered]
