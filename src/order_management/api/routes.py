"""FastAPI routes for fulfillment orders.

Each route translates between Pydantic schemas and Protean commands, and
forwards the caller's ``X-Correlation-ID`` so events staged by the command
carry it.
"""

import json

from fastapi import APIRouter, Header
from protean.utils.globals import current_domain

from order_management.api.schemas import (
    CancelFulfillmentOrderRequest,
    CreateFulfillmentOrderRequest,
    FulfillmentOrderResponse,
)
from order_management.errors import unique_violations_as_conflicts
from order_management.order.cancellation import CancelFulfillmentOrder
from order_management.order.creation import CreateFulfillmentOrder
from order_management.order.queries import get_order, order_to_dict
from order_management.order.shipping import ShipFulfillmentOrder

router = APIRouter(prefix="/fulfillment_orders", tags=["fulfillment_orders"])


def _order_response(order_id: str) -> FulfillmentOrderResponse:
    return FulfillmentOrderResponse(**order_to_dict(get_order(order_id)))


@router.post("", status_code=201, response_model=FulfillmentOrderResponse)
async def create_fulfillment_order(
    body: CreateFulfillmentOrderRequest,
    idempotency_key: str | None = Header(default=None),
    x_correlation_id: str | None = Header(default=None),
) -> FulfillmentOrderResponse:
    """Accept a fulfillment order. Replaying an Idempotency-Key returns the original order."""
    command = CreateFulfillmentOrder(
        seller_order_id=body.seller_order_id,
        displayable_order_id=body.displayable_order_id,
        displayable_order_date=body.displayable_order_date,
        displayable_order_comment=body.displayable_order_comment,
        shipping_category=body.shipping_speed_category,
        fulfillment_policy=body.fulfillment_policy,
        items=json.dumps([item.model_dump() for item in body.items]),
        destination_address=json.dumps(body.destination_address.model_dump()),
        idempotency_key=idempotency_key,
    )
    with unique_violations_as_conflicts():
        order_id = current_domain.process(command, asynchronous=False, correlation_id=x_correlation_id)
    return _order_response(order_id)


@router.get("/{order_id}", response_model=FulfillmentOrderResponse)
async def get_fulfillment_order(order_id: str) -> FulfillmentOrderResponse:
    return _order_response(order_id)


@router.post("/{order_id}/cancel", response_model=FulfillmentOrderResponse)
async def cancel_fulfillment_order(
    order_id: str,
    body: CancelFulfillmentOrderRequest,
    x_correlation_id: str | None = Header(default=None),
) -> FulfillmentOrderResponse:
    command = CancelFulfillmentOrder(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False, correlation_id=x_correlation_id)
    return _order_response(order_id)


@router.post("/{order_id}/ship", response_model=FulfillmentOrderResponse)
async def ship_fulfillment_order(
    order_id: str,
    x_correlation_id: str | None = Header(default=None),
) -> FulfillmentOrderResponse:
    command = ShipFulfillmentOrder(order_id=order_id)
    current_domain.process(command, asynchronous=False, correlation_id=x_correlation_id)
    return _order_response(order_id)
