"""Broker delivery bounded by a per-envelope deadline."""

import contextvars
import threading

import structlog

from order_management.broker.port import BrokerPort, DeliveryError

logger = structlog.get_logger(__name__)


class DeadlineDelivery:
    """Deliver each envelope on its own thread and stop waiting at ``timeout``.

    An envelope whose delivery overruns the deadline is reported as failed
    and its thread is left to finish in the background, so a broker call that
    never returns only costs its own record a retry. Overrunning threads are
    counted in ``overrunning``.
    """

    def __init__(self, port: BrokerPort, timeout: float):
        self.port = port
        self.timeout = timeout
        self._overrun: list[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def overrunning(self) -> int:
        with self._lock:
            self._overrun = [thread for thread in self._overrun if thread.is_alive()]
            return len(self._overrun)

    def deliver(self, envelope: dict) -> None:
        """Deliver ``envelope``, raising ``DeliveryError`` on refusal or deadline."""
        outcome: dict = {}

        def attempt():
            try:
                self.port.deliver(envelope)
            except Exception as exc:
                outcome["error"] = exc

        # The copied context carries the active domain into the delivery thread
        context = contextvars.copy_context()
        thread = threading.Thread(
            target=context.run,
            args=(attempt,),
            name=f"deliver-{envelope['id']}",
            daemon=True,
        )
        thread.start()
        thread.join(timeout=self.timeout)

        if thread.is_alive():
            with self._lock:
                self._overrun.append(thread)
            logger.warning(
                "Delivery exceeded deadline",
                envelope_id=envelope["id"],
                timeout=self.timeout,
                overrunning=self.overrunning,
            )
            raise DeliveryError(f"Delivery of {envelope['id']} exceeded {self.timeout}s deadline")

        error = outcome.get("error")
        if isinstance(error, DeliveryError):
            raise error
        if error is not None:
            raise DeliveryError(f"Delivery of {envelope['id']} failed: {error}") from error
