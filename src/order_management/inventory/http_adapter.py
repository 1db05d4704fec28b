"""Inventory service adapter over HTTP.

Reads ``GET {base_url}/stock_levels/{sku}`` and compares ``available_to_promise``
with the requested quantity. A 404 means the SKU is unknown to inventory and
counts as zero available.
"""

import httpx
import structlog

from order_management.inventory.port import (
    AvailabilityResult,
    InventoryPort,
    InventoryUnavailableError,
    Shortfall,
)
from order_management.inventory.resilience import CircuitOpenError, ResiliencePolicy

logger = structlog.get_logger(__name__)

_EXPLICIT_REASONS = {"DISCONTINUED", "BACKORDERED"}


class HttpInventory(InventoryPort):
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        policy: ResiliencePolicy | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.policy = policy or ResiliencePolicy(retry_on=(httpx.HTTPError,))
        self._client = client or httpx.Client(timeout=timeout)

    def check_availability(self, sku_quantities: dict[str, int]) -> AvailabilityResult:
        shortfalls = []
        for sku, requested in sku_quantities.items():
            try:
                level = self.policy.call(self._fetch_stock_level, sku)
            except CircuitOpenError as exc:
                logger.warning("Inventory circuit open", sku=sku)
                raise InventoryUnavailableError(str(exc)) from exc
            except httpx.HTTPError as exc:
                logger.error("Inventory lookup failed", sku=sku, error=str(exc))
                raise InventoryUnavailableError(f"Inventory lookup failed for {sku}") from exc

            available = int(level.get("available_to_promise", 0)) if level else 0
            if available < requested:
                shortfalls.append(
                    Shortfall(
                        sku=sku,
                        requested=requested,
                        available=max(0, available),
                        reason=_explicit_reason(level),
                    )
                )
        return AvailabilityResult.short(shortfalls)

    def _fetch_stock_level(self, sku: str) -> dict | None:
        response = self._client.get(f"{self.base_url}/stock_levels/{sku}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self._client.close()


def _explicit_reason(level: dict | None) -> str | None:
    reason = (level or {}).get("reason")
    return reason if reason in _EXPLICIT_REASONS else None
