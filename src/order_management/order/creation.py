"""Fulfillment order acceptance — command and handler.

The whole acceptance runs in the handler's unit of work:

    duplicate check -> business rules -> inventory + fulfillment policy
    -> receive / record decision / validate -> persist order

The unit of work writes the order's events to the outbox in the same commit.
Nothing is written unless every step succeeds. A replayed idempotency key
returns the original order id without touching storage.
"""

import json
from dataclasses import asdict

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from order_management.context import RequestContext
from order_management.domain import order_management
from order_management.errors import OrderConflictError, OrderRejectedError, conflict_from_validation
from order_management.inventory import get_inventory
from order_management.inventory.port import InventoryUnavailableError
from order_management.order.duplicates import DuplicateDetector, DuplicateReason
from order_management.order.order import FulfillmentOrder, FulfillmentPolicy, ShippingCategory
from order_management.order.policy import (
    FulfillmentPolicyEngine,
    reasons_from_availability,
    snapshot_from_availability,
)
from order_management.order.validation import OrderValidator
from order_management.settings import FuzzyDuplicateAction, get_settings

logger = structlog.get_logger(__name__)


@order_management.command(part_of="FulfillmentOrder")
class CreateFulfillmentOrder:
    seller_order_id = String(required=True, max_length=40)
    displayable_order_id = String(required=True, max_length=40)
    displayable_order_date = DateTime()
    displayable_order_comment = String(max_length=1000)
    shipping_category = String(required=True, max_length=20)
    fulfillment_policy = String(
        choices=FulfillmentPolicy,
        default=FulfillmentPolicy.FILL_OR_KILL.value,
    )
    items = Text(required=True)  # JSON: list of item dicts
    destination_address = Text(required=True)  # JSON: address dict
    idempotency_key = String(max_length=255)


def _load_json(value):
    return json.loads(value) if isinstance(value, str) else value


@order_management.command_handler(part_of=FulfillmentOrder)
class CreateFulfillmentOrderHandler:
    @handle(CreateFulfillmentOrder)
    def create_fulfillment_order(self, command):
        context = RequestContext.from_command(command)
        log = context.bind(logger)
        settings = get_settings()

        order = FulfillmentOrder.create(
            seller_order_id=command.seller_order_id,
            displayable_order_id=command.displayable_order_id,
            items_data=_load_json(command.items) or [],
            destination_address=_load_json(command.destination_address),
            shipping_category=command.shipping_category,
            fulfillment_policy=command.fulfillment_policy or FulfillmentPolicy.FILL_OR_KILL.value,
            idempotency_key=command.idempotency_key,
            displayable_order_date=command.displayable_order_date,
            displayable_order_comment=command.displayable_order_comment,
        )

        # 1. Duplicates
        check = DuplicateDetector(window_hours=settings.duplicate_detection_window_hours).check(order)
        if check.is_duplicate:
            existing_id = str(check.existing.id)
            if check.reason == DuplicateReason.IDEMPOTENCY_KEY:
                log.info(
                    "Idempotent replay, returning existing order",
                    idempotency_key=order.idempotency_key,
                    order_id=existing_id,
                )
                return existing_id
            if check.reason == DuplicateReason.SELLER_ORDER_ID:
                raise OrderConflictError(check.message, reason=check.reason.value, existing_order_id=existing_id)
            if settings.fuzzy_duplicate_action == FuzzyDuplicateAction.REJECT:
                raise OrderConflictError(check.message, reason=check.reason.value, existing_order_id=existing_id)
            log.warning(
                "Possible duplicate order accepted",
                seller_order_id=order.seller_order_id,
                existing_order_id=existing_id,
            )

        # 2. Business rules
        outcome = OrderValidator(settings).validate(order)
        if not outcome.is_valid:
            raise OrderRejectedError({"order": outcome.errors})
        order.shipping_category = ShippingCategory.parse(order.shipping_category).value

        # 3. Inventory and fulfillment policy
        engine = FulfillmentPolicyEngine()
        requested = {item.seller_sku: item.quantity for item in order.items}
        try:
            availability = get_inventory().check_availability(requested)
            decision = engine.decide(
                order,
                snapshot_from_availability(requested, availability),
                reasons_from_availability(availability),
            )
        except InventoryUnavailableError as exc:
            log.warning(
                "Inventory check failed, treating all items as unavailable",
                seller_order_id=order.seller_order_id,
                error=str(exc),
            )
            decision = engine.decide_without_inventory(order)

        if not decision.accept:
            skus = ", ".join(line.sku for line in decision.unfulfillable)
            raise OrderRejectedError(
                {"items": [f"Order cannot be fulfilled under {order.fulfillment_policy} policy. Unfulfillable: {skus}"]},
                unfulfillable_items=[asdict(line) for line in decision.unfulfillable],
            )

        # 4. Lifecycle
        order.receive()
        order.record_fulfillment_decision(decision.action, decision.unfulfillable)
        order.validate()
        events_staged = len(order._events)

        # 5. Persist; the unit of work writes the raised events to the outbox
        try:
            current_domain.repository_for(FulfillmentOrder).add(order)
        except ValidationError as exc:
            conflict = conflict_from_validation(exc)
            if conflict is None:
                raise
            raise conflict from exc

        log.info(
            "Fulfillment order accepted",
            order_id=str(order.id),
            seller_order_id=order.seller_order_id,
            fulfillment_action=order.fulfillment_action,
            events_staged=events_staged,
        )
        return str(order.id)
