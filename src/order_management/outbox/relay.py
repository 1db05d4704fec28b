"""Relay of staged order events from Protean's outbox to the broker.

Order events are written to the outbox by the unit of work that changes the
order. ``OrderEventRelay`` is the outbox processor the engine runs for this
domain: it claims ready rows the way Protean's ``OutboxProcessor`` does, but
publishes each row as an order event envelope through the configured
``BrokerPort`` with a per-envelope deadline.

A row that fails stays ``FAILED`` and is claimed again once its retry delay
(``outbox.retry``) has passed, for as long as it keeps failing. Published
rows keep ``status = published`` and ``published_at``.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta

import structlog
from protean.server.engine import Engine
from protean.server.outbox_processor import OutboxProcessor
from protean.utils.outbox import OutboxStatus

from order_management.broker import get_broker
from order_management.outbox.delivery import DeadlineDelivery
from order_management.outbox.envelope import build_envelope
from order_management.settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DrainReport:
    succeeded: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed


class OrderEventRelay(OutboxProcessor):
    def __init__(self, engine, database_provider_name: str, broker_provider_name: str, delivery=None, **kwargs):
        super().__init__(engine, database_provider_name, broker_provider_name, **kwargs)
        self.delivery = delivery

    @classmethod
    def replacing(cls, processor: OutboxProcessor) -> "OrderEventRelay":
        """Build a relay with the same wiring as one of the engine's stock processors."""
        return cls(
            processor.engine,
            processor.database_provider_name,
            processor.broker_provider_name,
            messages_per_tick=processor.messages_per_tick,
            tick_interval=processor._base_tick_interval,
            max_tick_interval=processor.max_tick_interval,
        )

    async def initialize(self) -> None:
        await super().initialize()
        if self.delivery is None:
            timeout = get_settings(self.engine.domain).outbox_delivery_timeout_seconds
            self.delivery = DeadlineDelivery(get_broker(), timeout=timeout)

    async def _publish_message(self, message):
        try:
            envelope = build_envelope(message)
            await asyncio.to_thread(self.delivery.deliver, envelope)
        except Exception as exc:
            logger.warning(
                "Order event delivery failed",
                message_id=message.message_id,
                correlation_id=message.correlation_id,
                error=str(exc),
            )
            return False, exc

        logger.debug("Order event delivered", message_id=message.message_id, type=envelope["type"])
        return True, None

    def _mark_message_failed(self, message, error) -> None:
        super()._mark_message_failed(message, error)
        if message.status != OutboxStatus.FAILED.value:
            return

        # Rows are staged with the framework default max_retries; lift it to
        # the configured ceiling so the claim query keeps selecting the row.
        message.max_retries = self.retry_config["max_attempts"]
        delay = min(
            self.retry_config["base_delay_seconds"]
            * self.retry_config["backoff_multiplier"] ** (message.retry_count - 1),
            self.retry_config["max_backoff_seconds"],
        )
        message.next_retry_at = self.engine.domain.clock.now() + timedelta(seconds=delay)

    def drain_cycle(self) -> DrainReport:
        """Publish every row that is ready now and report the outcome.

        Rows are claimed one page (``messages_per_tick``) at a time until a
        page comes back empty or holds only rows already attempted in this
        cycle. Failures to read the outbox propagate; delivery failures are
        recorded on their rows.
        """
        return asyncio.run(self._drain())

    async def _drain(self) -> DrainReport:
        if self.outbox_repo is None:
            await self.initialize()

        attempted: set = set()
        succeeded = failed = 0
        while True:
            batch = await self.get_next_batch_of_messages()
            if not batch:
                break

            published = await self.process_batch(batch)
            succeeded += published
            failed += len(batch) - published

            ids = {message.id for message in batch}
            if ids <= attempted:
                break
            attempted |= ids

        report = DrainReport(succeeded=succeeded, failed=failed)
        if report.attempted:
            logger.info("Outbox drain cycle finished", succeeded=succeeded, failed=failed)
        return report


class RelayEngine(Engine):
    """Protean engine whose internal outbox processors are ``OrderEventRelay``s."""

    def __init__(self, domain, **kwargs):
        super().__init__(domain, **kwargs)
        for name, processor in list(self._outbox_processors.items()):
            if not processor.is_external:
                self._outbox_processors[name] = OrderEventRelay.replacing(processor)

    @property
    def relays(self) -> list[OrderEventRelay]:
        return [
            processor for processor in self._outbox_processors.values() if isinstance(processor, OrderEventRelay)
        ]
