"""Application tests for the CreateFulfillmentOrder command handler."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from protean.utils.outbox import OutboxStatus

from order_management.errors import OrderConflictError, OrderRejectedError
from order_management.order.creation import CreateFulfillmentOrder
from order_management.order.duplicates import DuplicateCheck, DuplicateDetector
from order_management.order.order import (
    FulfillmentAction,
    FulfillmentOrder,
    OrderStatus,
    UnfulfillableReason,
)
from order_management.outbox.envelope import event_type_for

ADDRESS = {
    "name": "Jane Doe",
    "address_line1": "1 Main Street",
    "city": "Springfield",
    "state_or_region": "IL",
    "postal_code": "62701",
    "country_code": "US",
}
ITEMS = [
    {"seller_sku": "SKU-A", "seller_item_id": "L1", "quantity": 2},
    {"seller_sku": "SKU-B", "seller_item_id": "L2", "quantity": 3},
]


def _create_order(correlation_id=None, **overrides):
    defaults = {
        "seller_order_id": "SO-6001",
        "displayable_order_id": "D-6001",
        "shipping_category": "STANDARD",
        "items": json.dumps(ITEMS),
        "destination_address": json.dumps(ADDRESS),
    }
    defaults.update(overrides)
    return current_domain.process(
        CreateFulfillmentOrder(**defaults),
        asynchronous=False,
        correlation_id=correlation_id,
    )


def _get_order(order_id):
    return current_domain.repository_for(FulfillmentOrder).get(order_id)


def _outbox_rows(order_id):
    outbox = current_domain._get_outbox_repo("default")
    rows = [row for row in outbox.query.all().items if row.data["order_id"] == order_id]
    return sorted(rows, key=lambda row: tuple(int(part) for part in row.metadata_.domain.sequence_id.split(".")))


def _outbox_types(order_id):
    return [event_type_for(row.type) for row in _outbox_rows(order_id)]


def _order_count():
    return len(current_domain.repository_for(FulfillmentOrder)._dao.query.all().items)


class TestHappyPath:
    def test_order_is_persisted_validated(self, inventory):
        order = _get_order(_create_order())
        assert order.status == OrderStatus.VALIDATED.value
        assert order.fulfillment_action == FulfillmentAction.COMPLETE.value
        assert order.received_at is not None
        assert len(order.items) == 2

    def test_received_and_validated_events_are_staged(self, inventory):
        order_id = _create_order()
        assert _outbox_types(order_id) == ["order-received", "order-validated"]

    def test_staged_rows_are_pending_outbox_messages(self, inventory):
        order_id = _create_order()

        rows = _outbox_rows(order_id)
        assert [row.type.split(".")[1] for row in rows] == ["OrderReceived", "OrderValidated"]
        for row in rows:
            assert row.status == OutboxStatus.PENDING.value
            assert row.retry_count == 0
            assert row.published_at is None
            assert row.data["order_id"] == order_id

    def test_shipping_category_is_stored_upper_case(self, inventory):
        order = _get_order(_create_order(shipping_category="expedited"))
        assert order.shipping_category == "EXPEDITED"

    def test_inventory_is_asked_for_every_sku(self, inventory):
        _create_order()
        assert inventory.calls == [{"SKU-A": 2, "SKU-B": 3}]

    def test_correlation_id_reaches_the_envelope(self, inventory):
        order_id = _create_order(correlation_id="corr-abc")
        assert {row.correlation_id for row in _outbox_rows(order_id)} == {"corr-abc"}

    def test_items_may_be_passed_as_a_list(self, inventory):
        order = _get_order(_create_order(items=json.dumps(ITEMS[:1])))
        assert [item.seller_sku for item in order.items] == ["SKU-A"]


class TestIdempotentReplay:
    def test_same_key_returns_the_original_order(self, inventory):
        first = _create_order(idempotency_key="idem-1")
        second = _create_order(idempotency_key="idem-1")
        assert second == first

    def test_replay_has_no_side_effects(self, inventory):
        order_id = _create_order(idempotency_key="idem-2")
        outbox_before = _outbox_types(order_id)

        _create_order(idempotency_key="idem-2", seller_order_id="SO-OTHER")

        assert _order_count() == 1
        assert _outbox_types(order_id) == outbox_before
        assert len(inventory.calls) == 1


class TestConflicts:
    def test_reused_seller_order_id_is_a_conflict(self, inventory):
        existing = _create_order()
        with pytest.raises(OrderConflictError) as exc:
            _create_order(displayable_order_id="D-OTHER")
        assert exc.value.reason == "SELLER_ORDER_ID"
        assert exc.value.existing_order_id == existing
        assert _order_count() == 1

    def test_fuzzy_duplicate_is_accepted_with_warning_by_default(self, inventory):
        _create_order()
        _create_order(seller_order_id="SO-6002")
        assert _order_count() == 2

    def test_fuzzy_duplicate_is_rejected_when_configured(self, inventory, monkeypatch):
        monkeypatch.setitem(current_domain.config["custom"], "FUZZY_DUPLICATE_ACTION", "reject")
        _create_order()
        with pytest.raises(OrderConflictError) as exc:
            _create_order(seller_order_id="SO-6002")
        assert exc.value.reason == "FUZZY_MATCH"

    def test_fuzzy_window_excludes_older_orders(self, inventory, monkeypatch):
        monkeypatch.setitem(current_domain.config["custom"], "FUZZY_DUPLICATE_ACTION", "reject")
        repo = current_domain.repository_for(FulfillmentOrder)
        old = repo.get(_create_order())
        old.received_at = datetime.now(UTC) - timedelta(hours=30)
        repo.add(old)

        _create_order(seller_order_id="SO-6002")
        assert _order_count() == 2

    def test_fuzzy_window_includes_recent_orders(self, inventory, monkeypatch):
        monkeypatch.setitem(current_domain.config["custom"], "FUZZY_DUPLICATE_ACTION", "reject")
        repo = current_domain.repository_for(FulfillmentOrder)
        recent = repo.get(_create_order())
        recent.received_at = datetime.now(UTC) - timedelta(hours=1)
        repo.add(recent)

        with pytest.raises(OrderConflictError):
            _create_order(seller_order_id="SO-6002")


class TestLostRace:
    """Two requests both pass the duplicate check; the save decides."""

    @pytest.fixture()
    def detector_misses(self, monkeypatch):
        monkeypatch.setattr(DuplicateDetector, "check", lambda self, candidate: DuplicateCheck.clear())

    def test_seller_order_id_taken_at_save_is_a_conflict(self, inventory, detector_misses):
        order_id = _create_order()

        with pytest.raises(OrderConflictError) as exc:
            _create_order(displayable_order_id="D-OTHER")

        assert exc.value.reason == "SELLER_ORDER_ID"
        assert _order_count() == 1
        assert _outbox_types(order_id) == ["order-received", "order-validated"]
        assert len(current_domain._get_outbox_repo("default").find_unprocessed()) == 2

    def test_idempotency_key_taken_at_save_is_a_conflict(self, inventory, detector_misses):
        _create_order(idempotency_key="idem-race")

        with pytest.raises(OrderConflictError) as exc:
            _create_order(seller_order_id="SO-6009", displayable_order_id="D-6009", idempotency_key="idem-race")

        assert exc.value.reason == "IDEMPOTENCY_KEY"
        assert _order_count() == 1


class TestValidationRejections:
    def test_invalid_shipping_category_is_rejected(self, inventory):
        with pytest.raises(OrderRejectedError) as exc:
            _create_order(shipping_category="TELEPORT")
        assert exc.value.messages["order"][0].startswith("Invalid shipping speed category: TELEPORT")
        assert _order_count() == 0

    def test_empty_order_is_rejected(self, inventory):
        with pytest.raises(OrderRejectedError) as exc:
            _create_order(items=json.dumps([]))
        assert "Order must contain at least one item" in exc.value.messages["order"]

    def test_rejection_is_a_validation_error(self, inventory):
        with pytest.raises(ValidationError):
            _create_order(shipping_category="TELEPORT")

    def test_rejected_order_stages_nothing(self, inventory):
        with pytest.raises(OrderRejectedError):
            _create_order(shipping_category="TELEPORT")
        assert current_domain._get_outbox_repo("default").find_unprocessed() == []

    def test_unknown_catalog_sku_is_rejected_when_enabled(self, inventory, catalog, monkeypatch):
        monkeypatch.setitem(current_domain.config["custom"], "CHECK_PRODUCT_CATALOG", True)
        catalog.configure(products={"SKU-A": 1.0})
        with pytest.raises(OrderRejectedError) as exc:
            _create_order()
        assert "Invalid SKUs found: SKU-B" in exc.value.messages["order"][0]


class TestFulfillmentPolicies:
    def test_fill_or_kill_rejects_any_shortfall(self, inventory):
        inventory.configure(stock={"SKU-B": 1})
        with pytest.raises(OrderRejectedError) as exc:
            _create_order(fulfillment_policy="FILL_OR_KILL")

        [line] = exc.value.unfulfillable_items
        assert line["sku"] == "SKU-B"
        assert line["available"] == 1
        assert _order_count() == 0

    def test_fill_all_accepts_and_flags_shortfall(self, inventory):
        inventory.configure(stock={"SKU-B": 1})
        order_id = _create_order(fulfillment_policy="FILL_ALL")

        order = _get_order(order_id)
        assert order.status == OrderStatus.VALIDATED.value
        assert order.fulfillment_action == FulfillmentAction.PARTIAL.value
        [item] = order.unfulfillable_items
        assert item.line_id == "L2"
        assert item.shortfall == 2
        assert item.reason == UnfulfillableReason.INSUFFICIENT_STOCK.value
        assert _outbox_types(order_id) == ["order-received", "order-validated", "order-stock-unavailable"]

    def test_fill_all_available_announces_partial_acceptance(self, inventory):
        inventory.configure(stock={"SKU-B": 0})
        order_id = _create_order(fulfillment_policy="FILL_ALL_AVAILABLE")

        assert _outbox_types(order_id) == [
            "order-received",
            "order-validated",
            "order-partially-accepted",
            "order-stock-unavailable",
        ]
        item = _get_order(order_id).unfulfillable_items[0]
        assert item.reason == UnfulfillableReason.SKU_NOT_FOUND.value

    def test_nothing_available_is_unfulfillable(self, inventory):
        inventory.configure(default_stock=0)
        order = _get_order(_create_order(fulfillment_policy="FILL_ALL_AVAILABLE"))
        assert order.fulfillment_action == FulfillmentAction.UNFULFILLABLE.value
        assert len(order.unfulfillable_items) == 2

    def test_explicit_inventory_reason_is_kept(self, inventory):
        inventory.configure(stock={"SKU-A": 0}, reasons={"SKU-A": "DISCONTINUED"})
        order = _get_order(_create_order(fulfillment_policy="FILL_ALL"))
        assert order.unfulfillable_items[0].reason == UnfulfillableReason.DISCONTINUED.value


class TestInventoryOutage:
    def test_fill_or_kill_is_rejected_when_inventory_is_down(self, inventory):
        inventory.configure(should_fail=True)
        with pytest.raises(OrderRejectedError) as exc:
            _create_order()
        reasons = {line["reason"] for line in exc.value.unfulfillable_items}
        assert reasons == {UnfulfillableReason.INVENTORY_SERVICE_ERROR.value}

    def test_fill_all_is_accepted_as_unfulfillable_when_inventory_is_down(self, inventory):
        inventory.configure(should_fail=True)
        order = _get_order(_create_order(fulfillment_policy="FILL_ALL"))

        assert order.fulfillment_action == FulfillmentAction.UNFULFILLABLE.value
        assert all(item.available_quantity == 0 for item in order.unfulfillable_items)
        assert {item.reason for item in order.unfulfillable_items} == {
            UnfulfillableReason.INVENTORY_SERVICE_ERROR.value
        }
