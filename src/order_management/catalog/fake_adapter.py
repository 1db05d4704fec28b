"""Fake catalog adapter for tests and development."""

from order_management.catalog.port import (
    CatalogPort,
    CatalogUnavailableError,
    ProductValidation,
)


class FakeCatalog(CatalogPort):
    """In-memory catalog.

    With no products configured every SKU is valid and priced at
    ``default_price``.
    """

    def __init__(self):
        self.products: dict[str, float] | None = None
        self.default_price = 1.0
        self.should_fail = False

    def configure(
        self,
        products: dict[str, float] | None = None,
        default_price: float = 1.0,
        should_fail: bool = False,
    ):
        """Configure the fake catalog behavior for testing."""
        self.products = dict(products) if products is not None else None
        self.default_price = default_price
        self.should_fail = should_fail

    def validate_products(self, skus: list[str]) -> ProductValidation:
        if self.should_fail:
            raise CatalogUnavailableError("Catalog service unavailable")
        if self.products is None:
            return ProductValidation(all_valid=True)
        invalid = [sku for sku in skus if sku not in self.products]
        return ProductValidation(all_valid=not invalid, invalid_skus=invalid)

    def get_prices(self, skus: list[str]) -> dict[str, float]:
        if self.should_fail:
            raise CatalogUnavailableError("Catalog service unavailable")
        if self.products is None:
            return {sku: self.default_price for sku in skus}
        return {sku: self.products[sku] for sku in skus if sku in self.products}
