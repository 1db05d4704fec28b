"""Order cancellation — command and handler.

Cancelling always stages an ``order-cancelled`` event in the outbox, in the
same unit of work as the status change.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from order_management.context import RequestContext
from order_management.domain import order_management
from order_management.order.order import FulfillmentOrder

logger = structlog.get_logger(__name__)


@order_management.command(part_of="FulfillmentOrder")
class CancelFulfillmentOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@order_management.command_handler(part_of=FulfillmentOrder)
class CancelFulfillmentOrderHandler:
    @handle(CancelFulfillmentOrder)
    def cancel_fulfillment_order(self, command):
        context = RequestContext.from_command(command)
        repo = current_domain.repository_for(FulfillmentOrder)
        order = repo.get(command.order_id)

        order.cancel(command.reason)
        repo.add(order)

        context.bind(logger).info("Fulfillment order cancelled", order_id=str(order.id), reason=command.reason)
        return str(order.id)
