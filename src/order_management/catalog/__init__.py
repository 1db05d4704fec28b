"""Catalog adapter factory (CATALOG_ADAPTER=fake|http, CATALOG_SERVICE_URL)."""

import os

from order_management.catalog.port import CatalogPort

_current_catalog: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the configured catalog adapter (singleton). Defaults to FakeCatalog."""
    global _current_catalog
    if _current_catalog is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "fake")
        if adapter == "fake":
            from order_management.catalog.fake_adapter import FakeCatalog

            _current_catalog = FakeCatalog()
        elif adapter == "http":
            from order_management.catalog.http_adapter import HttpCatalog

            _current_catalog = HttpCatalog(os.environ.get("CATALOG_SERVICE_URL", "http://localhost:8082"))
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _current_catalog


def set_catalog(catalog: CatalogPort) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
