"""Event envelopes for order events leaving the service.

Every order event staged in Protean's outbox leaves the service as a
CloudEvents-style JSON envelope:

    {specversion, id, type, source, subject, time, datacontenttype, data[, correlationid]}

The envelope is built from the outbox row with ``Message.to_cloudevent``.
``id`` is the row's message id, so every redelivery of a row carries the
same id and consumers can dedupe on it. ``type`` is the short name from
``EVENT_TYPES`` and ``subject`` is the order id.
"""

from protean.utils.eventing import Message

from order_management.order.events import (
    OrderCancelled,
    OrderInvalidated,
    OrderPartiallyAccepted,
    OrderReceived,
    OrderShipped,
    OrderStockUnavailable,
    OrderValidated,
)

EVENT_TYPES = {
    OrderReceived: "order-received",
    OrderValidated: "order-validated",
    OrderInvalidated: "order-invalidated",
    OrderPartiallyAccepted: "order-partially-accepted",
    OrderStockUnavailable: "order-stock-unavailable",
    OrderCancelled: "order-cancelled",
    OrderShipped: "order-shipped",
}

_TYPES_BY_NAME = {event_cls.__name__: short for event_cls, short in EVENT_TYPES.items()}


def event_type_for(message_type: str) -> str:
    """Map a Protean message type (``OrderManagement.OrderReceived.v1``) to its envelope type."""
    parts = message_type.split(".")
    name = parts[-2] if len(parts) >= 2 else message_type
    try:
        return _TYPES_BY_NAME[name]
    except KeyError:
        raise ValueError(f"No envelope type registered for {message_type}") from None


def build_envelope(record) -> dict:
    """Build the envelope for an outbox row."""
    cloudevent = Message(data=record.data, metadata=record.metadata_).to_cloudevent()
    envelope = {
        "specversion": cloudevent["specversion"],
        "id": record.message_id,
        "type": event_type_for(record.type),
        "source": cloudevent["source"],
        "subject": str(record.data["order_id"]),
        "time": cloudevent.get("time") or record.created_at.isoformat(),
        "datacontenttype": cloudevent["datacontenttype"],
        "data": record.data,
    }
    if record.correlation_id:
        envelope["correlationid"] = record.correlation_id
    return envelope
