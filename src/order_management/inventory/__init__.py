"""Inventory adapter factory.

Provides get_inventory() / set_inventory() to swap implementations:
- FakeInventory for development and testing (default)
- HttpInventory against the inventory service (INVENTORY_ADAPTER=http,
  INVENTORY_SERVICE_URL)
"""

import os

from order_management.inventory.port import InventoryPort

_current_inventory: InventoryPort | None = None


def get_inventory() -> InventoryPort:
    """Return the configured inventory adapter (singleton)."""
    global _current_inventory
    if _current_inventory is None:
        adapter = os.environ.get("INVENTORY_ADAPTER", "fake")
        if adapter == "fake":
            from order_management.inventory.fake_adapter import FakeInventory

            _current_inventory = FakeInventory()
        elif adapter == "http":
            from order_management.inventory.http_adapter import HttpInventory

            _current_inventory = HttpInventory(os.environ.get("INVENTORY_SERVICE_URL", "http://localhost:8081"))
        else:
            raise ValueError(f"Unknown inventory adapter: {adapter}")
    return _current_inventory


def set_inventory(inventory: InventoryPort) -> None:
    """Override the active inventory adapter (useful for tests)."""
    global _current_inventory
    _current_inventory = inventory


def reset_inventory() -> None:
    """Reset the inventory singleton."""
    global _current_inventory
    _current_inventory = None
