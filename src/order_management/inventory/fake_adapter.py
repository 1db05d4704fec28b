"""Fake inventory adapter: in-memory stock levels for tests and development.

Unknown SKUs are fully in stock unless ``default_stock`` is set. Can be
switched into a failing mode to exercise the service-degraded path.
"""

from order_management.inventory.port import (
    AvailabilityResult,
    InventoryPort,
    InventoryUnavailableError,
    Shortfall,
)


class FakeInventory(InventoryPort):
    """Fake inventory that reports every SKU in stock by default."""

    def __init__(self):
        self.stock: dict[str, int] = {}
        self.reasons: dict[str, str] = {}
        self.default_stock: int | None = None
        self.should_fail = False
        self.calls: list[dict[str, int]] = []

    def configure(
        self,
        stock: dict[str, int] | None = None,
        default_stock: int | None = None,
        should_fail: bool = False,
        reasons: dict[str, str] | None = None,
    ):
        """Configure the fake inventory behavior for testing."""
        self.stock = dict(stock or {})
        self.default_stock = default_stock
        self.should_fail = should_fail
        self.reasons = dict(reasons or {})

    def check_availability(self, sku_quantities: dict[str, int]) -> AvailabilityResult:
        self.calls.append(dict(sku_quantities))
        if self.should_fail:
            raise InventoryUnavailableError("Inventory service unavailable")

        shortfalls = []
        for sku, requested in sku_quantities.items():
            if sku in self.stock:
                available = self.stock[sku]
            elif self.default_stock is not None:
                available = self.default_stock
            else:
                available = requested
            if available < requested:
                shortfalls.append(Shortfall(sku=sku, requested=requested, available=available, reason=self.reasons.get(sku)))
        return AvailabilityResult.short(shortfalls)
