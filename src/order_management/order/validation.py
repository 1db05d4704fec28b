"""Business-rule validation run before inventory is consulted.

Every rule is evaluated and all failures are reported together, so a seller
sees every problem with an order in one response.
"""

from collections import Counter
from dataclasses import dataclass, field

import structlog

from order_management.catalog import get_catalog
from order_management.catalog.port import CatalogPort
from order_management.order.order import FulfillmentOrder, ShippingCategory
from order_management.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ValidationOutcome:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class OrderValidator:
    def __init__(self, settings: Settings, catalog: CatalogPort | None = None):
        self.settings = settings
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogPort:
        return self._catalog or get_catalog()

    def validate(self, order: FulfillmentOrder) -> ValidationOutcome:
        errors: list[str] = []
        self._validate_items(order, errors)
        self._validate_shipping_category(order.shipping_category, errors)

        if order.items and self.settings.check_product_catalog:
            self._validate_product_catalog(order, errors)
        if order.items and self.settings.enable_order_value_validation:
            self._validate_order_value(order, errors)

        if errors:
            logger.info(
                "Order failed validation",
                seller_order_id=order.seller_order_id,
                error_count=len(errors),
            )
        return ValidationOutcome(errors=errors)

    def _validate_items(self, order, errors):
        items = order.items or []
        if not items:
            errors.append("Order must contain at least one item")
            return

        counts = Counter(item.seller_sku for item in items)
        duplicates = sorted(sku for sku, count in counts.items() if count > 1)
        if duplicates:
            errors.append(
                f"Duplicate SKUs found in order: {', '.join(duplicates)}. "
                "Please consolidate quantities for duplicate items."
            )

        if len(items) > self.settings.max_items_per_order:
            errors.append(
                f"Order contains {len(items)} items, exceeding the maximum of "
                f"{self.settings.max_items_per_order} items per order"
            )

        total = order.total_quantity()
        if total > self.settings.max_total_quantity:
            errors.append(
                f"Total order quantity ({total}) exceeds maximum allowed ({self.settings.max_total_quantity})"
            )
        if total <= 0:
            errors.append("Total order quantity must be greater than 0")

    def _validate_shipping_category(self, value, errors):
        if not value or not value.strip():
            errors.append("Shipping speed category is required")
            return
        try:
            ShippingCategory.parse(value)
        except ValueError as exc:
            errors.append(str(exc))

    def _validate_product_catalog(self, order, errors):
        skus = [item.seller_sku for item in order.items]
        try:
            result = self.catalog.validate_products(skus)
        except Exception as exc:
            logger.error("Product catalog validation failed", seller_order_id=order.seller_order_id, error=str(exc))
            errors.append(f"Unable to validate product catalog: {exc}")
            return

        if not result.all_valid:
            errors.append(
                f"Invalid SKUs found: {', '.join(result.invalid_skus)}. These products do not exist in the catalog."
            )

    def _validate_order_value(self, order, errors):
        skus = [item.seller_sku for item in order.items]
        try:
            prices = self.catalog.get_prices(skus)
        except Exception as exc:
            logger.error("Order value validation failed", seller_order_id=order.seller_order_id, error=str(exc))
            errors.append(f"Unable to validate order value: {exc}")
            return

        total_value = sum(prices.get(item.seller_sku, 0.0) * item.quantity for item in order.items)
        if total_value < self.settings.min_order_value:
            errors.append(f"Order value (${total_value:.2f}) is below minimum (${self.settings.min_order_value:.2f})")
        if total_value > self.settings.max_order_value:
            errors.append(f"Order value (${total_value:.2f}) exceeds maximum (${self.settings.max_order_value:.2f})")
