"""Catalog service adapter over HTTP (``GET {base_url}/products/{sku}``).

The product document carries ``sku``, ``title``, ``price``, ``active`` and
``category``. A missing or inactive product is an invalid SKU.
"""

import httpx
import structlog

from order_management.catalog.port import (
    CatalogPort,
    CatalogUnavailableError,
    ProductValidation,
)

logger = structlog.get_logger(__name__)


class HttpCatalog(CatalogPort):
    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.Client | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def validate_products(self, skus: list[str]) -> ProductValidation:
        invalid = []
        for sku in skus:
            product = self._fetch_product(sku)
            if product is None or not product.get("active", True):
                invalid.append(sku)
        return ProductValidation(all_valid=not invalid, invalid_skus=invalid)

    def get_prices(self, skus: list[str]) -> dict[str, float]:
        prices = {}
        for sku in skus:
            product = self._fetch_product(sku)
            if product is not None and product.get("price") is not None:
                prices[sku] = float(product["price"])
        return prices

    def _fetch_product(self, sku: str) -> dict | None:
        try:
            response = self._client.get(f"{self.base_url}/products/{sku}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            logger.error("Catalog lookup failed", sku=sku, error=str(exc))
            raise CatalogUnavailableError(f"Catalog lookup failed for {sku}") from exc

    def close(self) -> None:
        self._client.close()
