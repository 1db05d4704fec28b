"""Protean Engine runner for the order_management domain.

Starts an Engine whose outbox processor relays staged order events to the
configured broker (see ``[outbox]`` in domain.toml for batch size, tick
interval and retry delay).

Usage:
    python src/server.py           # Run the engine until interrupted
    python src/server.py --once    # Publish everything that is ready, then exit
"""

import argparse
import os

import structlog

from order_management.domain import order_management
from order_management.outbox.relay import RelayEngine
from order_management.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def run(once: bool = False) -> None:
    order_management.init()

    with order_management.domain_context():
        engine = RelayEngine(order_management)

        if once:
            for relay in engine.relays:
                report = relay.drain_cycle()
                logger.info(
                    "Outbox drained",
                    relay=relay.subscription_id,
                    succeeded=report.succeeded,
                    failed=report.failed,
                )
            return

        logger.info("Engine starting", relays=[relay.subscription_id for relay in engine.relays])
        engine.run()

    if engine.exit_code != 0:
        raise SystemExit(engine.exit_code)


def main():
    parser = argparse.ArgumentParser(description="Order Management engine runner")
    parser.add_argument("--once", action="store_true", help="Publish every ready outbox row and exit")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"))
    parser.add_argument("--json-logs", action="store_true", help="Render logs as JSON")
    args = parser.parse_args()

    configure_logging(level=args.log_level, json_logs=args.json_logs)
    run(once=args.once)


if __name__ == "__main__":
    main()
