"""Pydantic request/response schemas for the fulfillment order API.

These are the external contract; Protean commands stay internal.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    seller_sku: str = Field(max_length=50)
    seller_item_id: str = Field(max_length=50)
    quantity: int = Field(ge=1, le=10000)
    gift_message: str | None = Field(default=None, max_length=500)
    displayable_comment: str | None = Field(default=None, max_length=500)


class DestinationAddressSchema(BaseModel):
    name: str = Field(max_length=100)
    address_line1: str = Field(max_length=200)
    address_line2: str | None = Field(default=None, max_length=200)
    city: str = Field(max_length=100)
    state_or_region: str = Field(max_length=100)
    postal_code: str = Field(max_length=20)
    country_code: str = Field(min_length=2, max_length=2)


class CreateFulfillmentOrderRequest(BaseModel):
    seller_order_id: str = Field(max_length=40)
    displayable_order_id: str = Field(max_length=40)
    displayable_order_date: datetime | None = None
    displayable_order_comment: str | None = Field(default=None, max_length=1000)
    shipping_speed_category: str
    fulfillment_policy: str = "FILL_OR_KILL"
    items: list[OrderItemSchema]
    destination_address: DestinationAddressSchema


class CancelFulfillmentOrderRequest(BaseModel):
    reason: str = Field(max_length=500)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class UnfulfillableItemResponse(BaseModel):
    seller_sku: str
    line_id: str
    requested_quantity: int
    available_quantity: int
    shortfall: int
    reason: str


class FulfillmentOrderResponse(BaseModel):
    order_id: str
    seller_order_id: str
    displayable_order_id: str
    displayable_order_date: datetime | None = None
    displayable_order_comment: str | None = None
    shipping_category: str
    status: str
    fulfillment_policy: str
    fulfillment_action: str | None = None
    items: list[OrderItemSchema]
    unfulfillable_items: list[UnfulfillableItemResponse] = []
    destination_address: DestinationAddressSchema | None = None
    cancellation_reason: str | None = None
    received_at: datetime | None = None
    cancelled_at: datetime | None = None
    shipped_at: datetime | None = None
