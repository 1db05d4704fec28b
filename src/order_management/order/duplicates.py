"""Duplicate detection for incoming fulfillment orders.

Checks run in priority order and stop at the first match:

1. Idempotency key already used        -> replay, hand back the existing order
2. Seller order id already used        -> hard conflict
3. Same displayable order id, recipient, first address line, postal code and
   item count within the trailing window -> near-duplicate (fuzzy match)

Idempotency key and seller order id lookups must succeed: their errors
propagate and the order is not accepted. A failing fuzzy lookup only logs
the error and reports "not a duplicate".
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog
from protean.utils.globals import current_domain

from order_management.order.order import FulfillmentOrder

logger = structlog.get_logger(__name__)


class DuplicateReason(Enum):
    IDEMPOTENCY_KEY = "IDEMPOTENCY_KEY"
    SELLER_ORDER_ID = "SELLER_ORDER_ID"
    FUZZY_MATCH = "FUZZY_MATCH"


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    reason: DuplicateReason | None = None
    existing: FulfillmentOrder | None = None
    message: str | None = None

    @classmethod
    def clear(cls) -> "DuplicateCheck":
        return cls(is_duplicate=False)

    @property
    def is_replay(self) -> bool:
        return self.reason == DuplicateReason.IDEMPOTENCY_KEY


def normalize(value: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    if not value:
        return ""
    return " ".join(value.lower().split())


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DuplicateDetector:
    def __init__(
        self,
        window_hours: int = 24,
        clock: Callable[[], datetime] = _utc_now,
        repository=None,
    ):
        self.window = timedelta(hours=window_hours)
        self._clock = clock
        self._repository = repository

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(FulfillmentOrder)

    def check(self, candidate: FulfillmentOrder) -> DuplicateCheck:
        repo = self.repository

        if candidate.idempotency_key:
            existing = repo.find_by_idempotency_key(candidate.idempotency_key)
            if existing is not None:
                return DuplicateCheck(
                    is_duplicate=True,
                    reason=DuplicateReason.IDEMPOTENCY_KEY,
                    existing=existing,
                    message=f"Idempotency key {candidate.idempotency_key} already used by order {existing.id}",
                )

        existing = repo.find_by_seller_order_id(candidate.seller_order_id)
        if existing is not None:
            return DuplicateCheck(
                is_duplicate=True,
                reason=DuplicateReason.SELLER_ORDER_ID,
                existing=existing,
                message=f"Order with seller_order_id {candidate.seller_order_id} already exists",
            )

        try:
            return self._fuzzy_match(repo, candidate)
        except Exception as exc:
            logger.error(
                "Fuzzy duplicate check failed, accepting order",
                seller_order_id=candidate.seller_order_id,
                error=str(exc),
            )
            return DuplicateCheck.clear()

    def _fuzzy_match(self, repo, candidate: FulfillmentOrder) -> DuplicateCheck:
        since = self._clock() - self.window
        for other in repo.find_recent_by_displayable_id(candidate.displayable_order_id, since):
            if str(other.id) == str(candidate.id):
                continue
            if _fingerprint(other) == _fingerprint(candidate):
                return DuplicateCheck(
                    is_duplicate=True,
                    reason=DuplicateReason.FUZZY_MATCH,
                    existing=other,
                    message=(
                        f"Possible duplicate of order {other.id}: same displayable order id, "
                        f"recipient and item count within {int(self.window.total_seconds() // 3600)}h"
                    ),
                )

        return DuplicateCheck.clear()


def _fingerprint(order: FulfillmentOrder) -> tuple:
    address = order.destination_address
    return (
        normalize(address.name if address else None),
        normalize(address.address_line1 if address else None),
        normalize(address.postal_code if address else None),
        len(order.items or []),
    )
