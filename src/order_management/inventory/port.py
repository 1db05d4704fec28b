"""Inventory port (abstract interface).

The fulfillment policy engine only sees this contract: given SKU quantities,
answer which SKUs fall short, within bounded time. Adapters that cannot
answer raise ``InventoryUnavailableError``; callers then fail toward "nothing
available" instead of assuming stock.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class InventoryUnavailableError(Exception):
    """The inventory service could not be reached or did not answer in time."""


@dataclass(frozen=True)
class Shortfall:
    """A SKU with fewer units available than requested."""

    sku: str
    requested: int
    available: int
    reason: str | None = None  # e.g. DISCONTINUED, BACKORDERED


@dataclass(frozen=True)
class AvailabilityResult:
    """Result of an availability check."""

    all_available: bool
    shortfalls: list[Shortfall] = field(default_factory=list)

    @classmethod
    def available(cls) -> "AvailabilityResult":
        return cls(all_available=True)

    @classmethod
    def short(cls, shortfalls: list[Shortfall]) -> "AvailabilityResult":
        return cls(all_available=not shortfalls, shortfalls=list(shortfalls))


class InventoryPort(ABC):
    """Abstract inventory interface."""

    @abstractmethod
    def check_availability(self, sku_quantities: dict[str, int]) -> AvailabilityResult:
        """Check availability of every SKU in ``sku_quantities``.

        Raises:
            InventoryUnavailableError: the check could not be completed.
        """
        ...
