"""Fulfillment policy engine: reconciles requested quantities with inventory.

Decision table:

    Policy              All available   Some short              None available
    FILL_OR_KILL        accept          reject                  reject
    FILL_ALL            accept          accept (flag shortfall) accept (flag shortfall)
    FILL_ALL_AVAILABLE  accept          accept, partial         accept, partial

When the inventory check itself fails, every line is treated as unfulfillable
with reason INVENTORY_SERVICE_ERROR and nothing available.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from order_management.inventory.port import AvailabilityResult
from order_management.order.order import (
    FulfillmentAction,
    FulfillmentPolicy,
    UnfulfillableReason,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UnfulfillableLine:
    sku: str
    line_id: str
    requested: int
    available: int
    reason: str

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


@dataclass(frozen=True)
class PolicyDecision:
    accept: bool
    action: FulfillmentAction
    unfulfillable: list[UnfulfillableLine] = field(default_factory=list)

    @property
    def has_shortfall(self) -> bool:
        return bool(self.unfulfillable)


def snapshot_from_availability(requested: Mapping[str, int], result: AvailabilityResult) -> dict[str, int]:
    """Turn an inventory port answer into a SKU → available map.

    SKUs the port did not report as short are available in full.
    """
    snapshot = dict(requested)
    for shortfall in result.shortfalls:
        snapshot[shortfall.sku] = shortfall.available
    return snapshot


def reasons_from_availability(result: AvailabilityResult) -> dict[str, str]:
    """Explicit reasons (DISCONTINUED, BACKORDERED) the port attached to shortfalls."""
    return {s.sku: s.reason for s in result.shortfalls if s.reason}


class FulfillmentPolicyEngine:
    def decide(self, order, snapshot: Mapping[str, int], reasons: Mapping[str, str] | None = None) -> PolicyDecision:
        """Decide acceptance of ``order`` against ``snapshot`` (SKU → available).

        A SKU absent from the snapshot counts as zero available.
        """
        reasons = reasons or {}
        unfulfillable = []
        for item in order.items:
            available = max(0, int(snapshot.get(item.seller_sku, 0)))
            if item.quantity - available <= 0:
                continue
            reason = reasons.get(item.seller_sku)
            if reason is None:
                reason = (
                    UnfulfillableReason.SKU_NOT_FOUND.value
                    if available == 0
                    else UnfulfillableReason.INSUFFICIENT_STOCK.value
                )
            unfulfillable.append(
                UnfulfillableLine(
                    sku=item.seller_sku,
                    line_id=item.seller_item_id,
                    requested=item.quantity,
                    available=available,
                    reason=reason,
                )
            )
        return self._apply_policy(order, unfulfillable)

    def decide_without_inventory(self, order) -> PolicyDecision:
        """Inventory unreachable: assume nothing is available."""
        unfulfillable = [
            UnfulfillableLine(
                sku=item.seller_sku,
                line_id=item.seller_item_id,
                requested=item.quantity,
                available=0,
                reason=UnfulfillableReason.INVENTORY_SERVICE_ERROR.value,
            )
            for item in order.items
        ]
        return self._apply_policy(order, unfulfillable)

    def _apply_policy(self, order, unfulfillable: list[UnfulfillableLine]) -> PolicyDecision:
        action = derive_action(order, unfulfillable)
        policy = FulfillmentPolicy(order.fulfillment_policy)

        if not unfulfillable:
            accept = True
        elif policy == FulfillmentPolicy.FILL_OR_KILL:
            accept = False
        else:
            # FILL_ALL flags the shortfall; FILL_ALL_AVAILABLE ships what it can
            accept = True

        logger.info(
            "Fulfillment policy applied",
            order_id=str(order.id),
            policy=policy.value,
            accept=accept,
            action=action.value,
            unfulfillable_count=len(unfulfillable),
        )
        return PolicyDecision(accept=accept, action=action, unfulfillable=unfulfillable)


def derive_action(order, unfulfillable: list[UnfulfillableLine]) -> FulfillmentAction:
    total_shortfall = sum(line.shortfall for line in unfulfillable)
    if total_shortfall == 0:
        return FulfillmentAction.COMPLETE
    if total_shortfall == order.total_quantity():
        return FulfillmentAction.UNFULFILLABLE
    return FulfillmentAction.PARTIAL
