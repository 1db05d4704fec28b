"""Order Management bounded context (fulfillment order acceptance).

Accepts fulfillment orders from sellers, decides how much of each order can be
fulfilled against current inventory, and stages every state change in
Protean's transactional outbox, which the engine relays to the message broker.
"""

import structlog
from protean.domain import Domain

order_management = Domain(name="order_management")

logger = structlog.get_logger(__name__)
