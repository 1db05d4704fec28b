"""Read access to fulfillment orders."""

from protean.utils.globals import current_domain

from order_management.order.order import FulfillmentOrder


def get_order(order_id: str) -> FulfillmentOrder:
    """Return the order, or raise ``ObjectNotFoundError``."""
    return current_domain.repository_for(FulfillmentOrder).get(order_id)


def order_to_dict(order: FulfillmentOrder) -> dict:
    address = order.destination_address
    return {
        "order_id": str(order.id),
        "seller_order_id": order.seller_order_id,
        "displayable_order_id": order.displayable_order_id,
        "displayable_order_date": order.displayable_order_date,
        "displayable_order_comment": order.displayable_order_comment,
        "shipping_category": order.shipping_category,
        "status": order.status,
        "fulfillment_policy": order.fulfillment_policy,
        "fulfillment_action": order.fulfillment_action,
        "items": [
            {
                "seller_sku": item.seller_sku,
                "seller_item_id": item.seller_item_id,
                "quantity": item.quantity,
                "gift_message": item.gift_message,
                "displayable_comment": item.displayable_comment,
            }
            for item in order.items or []
        ],
        "unfulfillable_items": [item.as_event_data() for item in order.unfulfillable_items or []],
        "destination_address": address.to_dict() if address else None,
        "cancellation_reason": order.cancellation_reason,
        "received_at": order.received_at,
        "cancelled_at": order.cancelled_at,
        "shipped_at": order.shipped_at,
    }
