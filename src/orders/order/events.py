"""Domain events for the Order aggregate.

Events are versioned, immutable facts. Monetary amounts travel as canonical
decimal strings so consumers never see binary floats.
"""

from protean.fields import DateTime, Identifier, Integer, String

from orders.domain import orders


@orders.event(part_of="Order")
class OrderPlaced:
    """A new order was placed with its line items and total locked in."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    owner_id = Identifier(required=True)
    total_amount = String(required=True)  # serialized Decimal
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along one edge of the status table."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@orders.event(part_of="Order")
class OrderCancelled:
    """The order reached the Cancelled terminal state."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    previous_status = String(required=True)
    cancelled_by = String(required=True, max_length=50)
    cancelled_at = DateTime(required=True)
