"""Acceptance and outbox delivery settings read from the domain's ``[custom]`` config.

Values come from ``domain.toml`` and may be overridden per environment
(``[test.custom]``) or through ``${ENV_VAR|default}`` placeholders, in which
case they arrive as strings and are coerced here.
"""

from dataclasses import dataclass
from enum import Enum

from protean.utils.globals import current_domain


class FuzzyDuplicateAction(Enum):
    WARN = "warn"
    REJECT = "reject"


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class Settings:
    max_total_quantity: int = 100000
    max_items_per_order: int = 100
    duplicate_detection_window_hours: int = 24
    fuzzy_duplicate_action: FuzzyDuplicateAction = FuzzyDuplicateAction.WARN
    check_product_catalog: bool = False
    enable_order_value_validation: bool = False
    min_order_value: float = 0.01
    max_order_value: float = 1000000.0
    outbox_delivery_timeout_seconds: float = 5.0

    @classmethod
    def from_config(cls, custom: dict) -> "Settings":
        defaults = cls()
        return cls(
            max_total_quantity=int(custom.get("MAX_TOTAL_QUANTITY", defaults.max_total_quantity)),
            max_items_per_order=int(custom.get("MAX_ITEMS_PER_ORDER", defaults.max_items_per_order)),
            duplicate_detection_window_hours=int(
                custom.get("DUPLICATE_DETECTION_WINDOW_HOURS", defaults.duplicate_detection_window_hours)
            ),
            fuzzy_duplicate_action=FuzzyDuplicateAction(
                str(custom.get("FUZZY_DUPLICATE_ACTION", defaults.fuzzy_duplicate_action.value)).lower()
            ),
            check_product_catalog=_as_bool(custom.get("CHECK_PRODUCT_CATALOG", False)),
            enable_order_value_validation=_as_bool(custom.get("ENABLE_ORDER_VALUE_VALIDATION", False)),
            min_order_value=float(custom.get("MIN_ORDER_VALUE", defaults.min_order_value)),
            max_order_value=float(custom.get("MAX_ORDER_VALUE", defaults.max_order_value)),
            outbox_delivery_timeout_seconds=float(
                custom.get("OUTBOX_DELIVERY_TIMEOUT_SECONDS", defaults.outbox_delivery_timeout_seconds)
            ),
        )


def get_settings(domain=None) -> Settings:
    """Return settings for ``domain`` (defaults to the active domain)."""
    domain = domain or current_domain
    return Settings.from_config(domain.config.get("custom", {}) or {})
