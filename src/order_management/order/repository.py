"""Repository for the FulfillmentOrder aggregate."""

from datetime import UTC, datetime

from order_management.domain import order_management
from order_management.order.order import FulfillmentOrder


@order_management.repository(part_of=FulfillmentOrder)
class FulfillmentOrderRepository:
    """Lookups used by duplicate detection."""

    def find_by_idempotency_key(self, key: str) -> FulfillmentOrder | None:
        if not key:
            return None
        return self._dao.query.filter(idempotency_key=key).all().first

    def find_by_seller_order_id(self, seller_order_id: str) -> FulfillmentOrder | None:
        if not seller_order_id:
            return None
        return self._dao.query.filter(seller_order_id=seller_order_id).all().first

    def find_recent_by_displayable_id(self, displayable_order_id: str, since: datetime) -> list[FulfillmentOrder]:
        """Orders sharing ``displayable_order_id`` received at or after ``since``."""
        candidates = self._dao.query.filter(displayable_order_id=displayable_order_id).all().items
        return [order for order in candidates if order.received_at and _aware(order.received_at) >= since]


def _aware(value: datetime) -> datetime:
    # Some providers hand back naive UTC timestamps
    return value if value.tzinfo else value.replace(tzinfo=UTC)
