"""FulfillmentOrder aggregate: the unit of acceptance in this domain.

State Machine:
    NEW → RECEIVED → VALIDATED | INVALIDATED
    NEW, RECEIVED, VALIDATED → CANCELLED
    RECEIVED, VALIDATED → SHIPPED
    CANCELLED, SHIPPED and INVALIDATED are terminal.

An invalid transition raises ``InvalidStateError`` (a state conflict); it never
silently no-ops.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import InvalidStateError, ValidationError
from protean.fields import DateTime, HasMany, Integer, String, ValueObject

from order_management.domain import order_management
from order_management.order.events import (
    OrderCancelled,
    OrderInvalidated,
    OrderPartiallyAccepted,
    OrderReceived,
    OrderShipped,
    OrderStockUnavailable,
    OrderValidated,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    NEW = "NEW"
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    INVALIDATED = "INVALIDATED"
    CANCELLED = "CANCELLED"
    SHIPPED = "SHIPPED"


class FulfillmentPolicy(Enum):
    FILL_OR_KILL = "FILL_OR_KILL"
    FILL_ALL = "FILL_ALL"
    FILL_ALL_AVAILABLE = "FILL_ALL_AVAILABLE"


class FulfillmentAction(Enum):
    COMPLETE = "COMPLETE"
    PARTIAL = "PARTIAL"
    UNFULFILLABLE = "UNFULFILLABLE"


class UnfulfillableReason(Enum):
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    SKU_NOT_FOUND = "SKU_NOT_FOUND"
    INVENTORY_SERVICE_ERROR = "INVENTORY_SERVICE_ERROR"
    DISCONTINUED = "DISCONTINUED"
    BACKORDERED = "BACKORDERED"


class ShippingCategory(Enum):
    STANDARD = "STANDARD"
    EXPEDITED = "EXPEDITED"
    PRIORITY = "PRIORITY"
    SAME_DAY = "SAME_DAY"
    NEXT_DAY = "NEXT_DAY"
    SCHEDULED = "SCHEDULED"

    @classmethod
    def parse(cls, value: str) -> "ShippingCategory":
        """Case-insensitive lookup; raises ``ValueError`` for unknown values."""
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            valid = ", ".join(c.value for c in cls)
            raise ValueError(f"Invalid shipping speed category: {value}. Valid values are: {valid}") from None


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.RECEIVED: {
        OrderStatus.VALIDATED,
        OrderStatus.INVALIDATED,
        OrderStatus.CANCELLED,
        OrderStatus.SHIPPED,
    },
    OrderStatus.VALIDATED: {OrderStatus.CANCELLED, OrderStatus.SHIPPED},
    OrderStatus.INVALIDATED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.SHIPPED: set(),  # Terminal
}

_POSTAL_CODE_PATTERN = re.compile(r"^[A-Za-z0-9\s-]+$")
_COUNTRY_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@order_management.value_object(part_of="FulfillmentOrder")
class DestinationAddress:
    """Where the seller wants the order delivered.

    Also the basis for fuzzy duplicate detection: recipient name, first
    address line and postal code are compared after normalization.
    """

    name = String(required=True, max_length=100)
    address_line1 = String(required=True, max_length=200)
    address_line2 = String(max_length=200)
    city = String(required=True, max_length=100)
    state_or_region = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country_code = String(required=True, max_length=2)

    @invariant.post
    def postal_and_country_codes_are_well_formed(self):
        if self.postal_code and not _POSTAL_CODE_PATTERN.match(self.postal_code):
            raise ValidationError({"postal_code": ["Postal code contains invalid characters"]})
        if self.country_code and not _COUNTRY_CODE_PATTERN.match(self.country_code):
            raise ValidationError({"country_code": ["Country code must be 2 uppercase letters"]})


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@order_management.entity(part_of="FulfillmentOrder")
class OrderItem:
    """A requested line: a seller SKU and how many units of it to ship.

    ``seller_item_id`` is the line identity the seller uses; unfulfillable
    items refer back to it.
    """

    seller_sku = String(required=True, max_length=50)
    seller_item_id = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1, max_value=10000)
    gift_message = String(max_length=500)
    displayable_comment = String(max_length=500)


@order_management.entity(part_of="FulfillmentOrder")
class UnfulfillableItem:
    """A line the inventory snapshot could not (fully) cover."""

    seller_sku = String(required=True, max_length=50)
    line_id = String(required=True, max_length=50)
    requested_quantity = Integer(required=True, min_value=1)
    available_quantity = Integer(required=True, min_value=0)
    shortfall = Integer(required=True, min_value=1)
    reason = String(required=True, choices=UnfulfillableReason)

    def as_event_data(self) -> dict:
        return {
            "seller_sku": self.seller_sku,
            "line_id": self.line_id,
            "requested_quantity": self.requested_quantity,
            "available_quantity": self.available_quantity,
            "shortfall": self.shortfall,
            "reason": self.reason,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@order_management.aggregate
class FulfillmentOrder:
    seller_order_id = String(required=True, max_length=40, unique=True)
    idempotency_key = String(max_length=255, unique=True)
    displayable_order_id = String(required=True, max_length=40)
    displayable_order_date = DateTime()
    displayable_order_comment = String(max_length=1000)
    shipping_category = String(required=True, max_length=20)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.NEW.value,
    )
    fulfillment_policy = String(
        choices=FulfillmentPolicy,
        default=FulfillmentPolicy.FILL_OR_KILL.value,
    )
    fulfillment_action = String(choices=FulfillmentAction)
    items = HasMany(OrderItem)
    unfulfillable_items = HasMany(UnfulfillableItem)
    destination_address = ValueObject(DestinationAddress)
    cancellation_reason = String(max_length=500)
    invalidation_reason = String(max_length=500)
    created_at = DateTime()
    received_at = DateTime()
    cancelled_at = DateTime()
    shipped_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        seller_order_id,
        displayable_order_id,
        items_data,
        destination_address,
        shipping_category,
        fulfillment_policy=FulfillmentPolicy.FILL_OR_KILL.value,
        idempotency_key=None,
        displayable_order_date=None,
        displayable_order_comment=None,
    ):
        """Build a NEW order from seller input. Nothing is announced yet.

        Args:
            items_data: List of dicts with seller_sku, seller_item_id, quantity
                        and optional gift_message / displayable_comment.
            destination_address: Dict matching ``DestinationAddress``.
        """
        return cls(
            seller_order_id=seller_order_id,
            idempotency_key=idempotency_key or None,
            displayable_order_id=displayable_order_id,
            displayable_order_date=displayable_order_date,
            displayable_order_comment=displayable_order_comment,
            shipping_category=shipping_category,
            fulfillment_policy=fulfillment_policy,
            items=[OrderItem(**item) for item in items_data],
            destination_address=DestinationAddress(**destination_address),
            created_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Raise a state conflict unless the current state allows ``target_status``."""
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStateError(f"Cannot transition order from {current.value} to {target_status.value}")

    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items or [])

    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def receive(self):
        """NEW → RECEIVED. Stamps ``received_at``."""
        self._assert_can_transition(OrderStatus.RECEIVED)
        if not self.items:
            raise ValidationError({"items": ["Order must contain at least one item"]})
        if self.total_quantity() <= 0:
            raise ValidationError({"items": ["Total order quantity must be greater than 0"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.RECEIVED.value
        self.received_at = now

        self.raise_(
            OrderReceived(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                displayable_order_id=self.displayable_order_id,
                idempotency_key=self.idempotency_key,
                shipping_category=self.shipping_category,
                fulfillment_policy=self.fulfillment_policy,
                item_count=len(self.items),
                total_quantity=self.total_quantity(),
                received_at=now,
            )
        )

    def record_fulfillment_decision(self, action, unfulfillable_lines):
        """Store the policy engine's verdict. Only allowed while RECEIVED."""
        if OrderStatus(self.status) != OrderStatus.RECEIVED:
            raise InvalidStateError("Fulfillment decisions can only be recorded on a Received order")

        self.fulfillment_action = FulfillmentAction(action).value
        for line in unfulfillable_lines:
            self.add_unfulfillable_items(
                UnfulfillableItem(
                    seller_sku=line.sku,
                    line_id=line.line_id,
                    requested_quantity=line.requested,
                    available_quantity=line.available,
                    shortfall=line.shortfall,
                    reason=UnfulfillableReason(line.reason).value,
                )
            )

    def validate(self):
        """RECEIVED → VALIDATED. Also announces any stock shortfall."""
        self._assert_can_transition(OrderStatus.VALIDATED)
        self.status = OrderStatus.VALIDATED.value

        self.raise_(
            OrderValidated(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                fulfillment_policy=self.fulfillment_policy,
                fulfillment_action=self.fulfillment_action or FulfillmentAction.COMPLETE.value,
                validated_at=datetime.now(UTC),
            )
        )
        if self.unfulfillable_items:
            self._announce_shortfall()

    def _announce_shortfall(self):
        unfulfillable = [item.as_event_data() for item in self.unfulfillable_items]
        requested = len(self.items)
        short = len(unfulfillable)

        if FulfillmentPolicy(self.fulfillment_policy) == FulfillmentPolicy.FILL_ALL_AVAILABLE:
            self.raise_(
                OrderPartiallyAccepted(
                    order_id=str(self.id),
                    seller_order_id=self.seller_order_id,
                    unfulfillable_items=unfulfillable,
                    total_items_requested=requested,
                    items_fulfillable=requested - short,
                    items_unfulfillable=short,
                    summary=f"Order {self.id} partially accepted: {requested - short} of {requested} items can be fulfilled",
                )
            )

        total_shortfall = sum(item["shortfall"] for item in unfulfillable)
        self.raise_(
            OrderStockUnavailable(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                unavailable_items=unfulfillable,
                total_items_requested=requested,
                items_unavailable=short,
                total_quantity_shortfall=total_shortfall,
                summary=(
                    f"Order {self.id} accepted with stock shortage: {short} of {requested} items unavailable, "
                    f"total shortfall: {total_shortfall} units"
                ),
            )
        )

    def invalidate(self, reason):
        """RECEIVED → INVALIDATED."""
        self._assert_can_transition(OrderStatus.INVALIDATED)
        now = datetime.now(UTC)
        self.status = OrderStatus.INVALIDATED.value
        self.invalidation_reason = reason

        self.raise_(
            OrderInvalidated(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                reason=reason,
                invalidated_at=now,
            )
        )

    def cancel(self, reason):
        """Cancel from any pre-terminal state."""
        current = OrderStatus(self.status)
        if OrderStatus.CANCELLED not in _VALID_TRANSITIONS[current]:
            raise InvalidStateError(f"Cannot cancel order in {current.value} state")

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                reason=reason,
                cancelled_at=now,
            )
        )

    def ship(self):
        """RECEIVED/VALIDATED → SHIPPED."""
        self._assert_can_transition(OrderStatus.SHIPPED)
        now = datetime.now(UTC)
        self.status = OrderStatus.SHIPPED.value
        self.shipped_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                seller_order_id=self.seller_order_id,
                shipped_at=now,
            )
        )
