"""Domain events for the FulfillmentOrder aggregate.

Each event is staged in the outbox in the same unit of work as the state
change that raised it, and delivered to the broker as a JSON envelope whose
``type`` is looked up in ``outbox.envelope.EVENT_TYPES``.
"""

from protean.fields import DateTime, Identifier, Integer, List, String

from order_management.domain import order_management


@order_management.event(part_of="FulfillmentOrder")
class OrderReceived:
    """A fulfillment order passed duplicate checks and was received."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    displayable_order_id = String(required=True)
    idempotency_key = String()
    shipping_category = String(required=True)
    fulfillment_policy = String(required=True)
    item_count = Integer(required=True)
    total_quantity = Integer(required=True)
    received_at = DateTime(required=True)


@order_management.event(part_of="FulfillmentOrder")
class OrderValidated:
    """Business rules and the fulfillment policy accepted the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    fulfillment_policy = String(required=True)
    fulfillment_action = String(required=True)
    validated_at = DateTime(required=True)


@order_management.event(part_of="FulfillmentOrder")
class OrderInvalidated:
    """A received order was found invalid and will not be fulfilled."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    reason = String(required=True)
    invalidated_at = DateTime(required=True)


@order_management.event(part_of="FulfillmentOrder")
class OrderPartiallyAccepted:
    """Accepted under FILL_ALL_AVAILABLE; only the available lines will ship."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    unfulfillable_items = List()
    total_items_requested = Integer(required=True)
    items_fulfillable = Integer(required=True)
    items_unfulfillable = Integer(required=True)
    summary = String(max_length=500)


@order_management.event(part_of="FulfillmentOrder")
class OrderStockUnavailable:
    """The order was accepted with a stock shortfall on one or more lines."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    unavailable_items = List()
    total_items_requested = Integer(required=True)
    items_unavailable = Integer(required=True)
    total_quantity_shortfall = Integer(required=True)
    summary = String(max_length=500)


@order_management.event(part_of="FulfillmentOrder")
class OrderCancelled:
    """The order was cancelled before it shipped."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)


@order_management.event(part_of="FulfillmentOrder")
class OrderShipped:
    """The order left the warehouse."""

    __version__ = 1

    order_id = Identifier(required=True)
    seller_order_id = String(required=True)
    shipped_at = DateTime(required=True)
