"""Shared BDD fixtures and step definitions for fulfillment orders."""

import pytest
from protean.exceptions import InvalidStateError
from pytest_bdd import given, parsers, then

from order_management.order.order import FulfillmentOrder


def _new_order():
    return FulfillmentOrder.create(
        seller_order_id="SO-BDD-1",
        displayable_order_id="D-BDD-1",
        items_data=[{"seller_sku": "SKU-A", "seller_item_id": "L1", "quantity": 1}],
        destination_address={
            "name": "Jane Doe",
            "address_line1": "1 Main Street",
            "city": "Springfield",
            "state_or_region": "IL",
            "postal_code": "62701",
            "country_code": "US",
        },
        shipping_category="STANDARD",
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for a captured state conflict."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a new fulfillment order", target_fixture="order")
def new_order():
    return _new_order()


@given("a validated fulfillment order", target_fixture="order")
def validated_order():
    order = _new_order()
    order.receive()
    order.validate()
    order._events.clear()
    return order


@given("a shipped fulfillment order", target_fixture="order")
def shipped_order():
    order = _new_order()
    order.receive()
    order.validate()
    order.ship()
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then("the action fails with a state conflict")
def action_fails(error):
    assert isinstance(error["exc"], InvalidStateError)
