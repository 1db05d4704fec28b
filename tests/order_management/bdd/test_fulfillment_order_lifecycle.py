"""BDD tests for the fulfillment order lifecycle."""

from protean.exceptions import InvalidStateError
from pytest_bdd import parsers, scenarios, then, when

from order_management.order.events import OrderCancelled, OrderValidated

scenarios("features/fulfillment_order_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the order is received")
def receive_order(order):
    order.receive()


@when("the order is validated")
def validate_order(order, error):
    try:
        order.validate()
    except InvalidStateError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the order is cancelled with reason "{reason}"'))
def cancel_order(order, reason, error):
    try:
        order.cancel(reason)
    except InvalidStateError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("an OrderValidated event is raised")
def validated_event_raised(order):
    assert any(isinstance(e, OrderValidated) for e in order._events)


@then(parsers.cfparse('an OrderCancelled event is raised with reason "{reason}"'))
def cancelled_event_with_reason(order, reason):
    events = [e for e in order._events if isinstance(e, OrderCancelled)]
    assert len(events) == 1
    assert events[0].reason == reason
