"""Orders bounded context: order creation, numbering and lifecycle.

An order is placed once with price-snapshotted line items, receives a unique
date-scoped order number, and then only moves through the status state
machine. Line items never change after placement.
"""

from protean.domain import Domain

from orders.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

orders = Domain(name="orders")
