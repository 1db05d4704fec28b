"""Order shipping — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from order_management.context import RequestContext
from order_management.domain import order_management
from order_management.order.order import FulfillmentOrder

logger = structlog.get_logger(__name__)


@order_management.command(part_of="FulfillmentOrder")
class ShipFulfillmentOrder:
    order_id = Identifier(required=True)


@order_management.command_handler(part_of=FulfillmentOrder)
class ShipFulfillmentOrderHandler:
    @handle(ShipFulfillmentOrder)
    def ship_fulfillment_order(self, command):
        context = RequestContext.from_command(command)
        repo = current_domain.repository_for(FulfillmentOrder)
        order = repo.get(command.order_id)

        order.ship()
        repo.add(order)

        context.bind(logger).info("Fulfillment order shipped", order_id=str(order.id))
        return str(order.id)
