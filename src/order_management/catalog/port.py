"""Product catalog port.

Order validation asks the catalog two things: do these SKUs exist (and are
they active), and what does each cost.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class CatalogUnavailableError(Exception):
    """The catalog service could not answer."""


@dataclass(frozen=True)
class ProductValidation:
    all_valid: bool
    invalid_skus: list[str] = field(default_factory=list)


class CatalogPort(ABC):
    @abstractmethod
    def validate_products(self, skus: list[str]) -> ProductValidation:
        """Check that every SKU exists and is active."""
        ...

    @abstractmethod
    def get_prices(self, skus: list[str]) -> dict[str, float]:
        """Unit price per SKU. Unknown SKUs are left out of the result."""
        ...
