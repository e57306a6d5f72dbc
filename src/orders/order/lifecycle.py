"""Order status state machine.

State Machine (6 states):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    CANCELLED (from PENDING, CONFIRMED, PROCESSING)

The transition table is plain data so it can be enumerated exhaustively.
Owners have a narrower cancellation window (PENDING, CONFIRMED) than the
privileged set-status path.
"""

from enum import Enum
from types import MappingProxyType

from orders.errors import InvalidRequest


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value):
        """Resolve a member from itself, its value ("Shipped") or its name ("SHIPPED")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.lower()):
                    return member
        raise InvalidRequest(
            "status",
            f"Unknown order status: {value!r}",
            allowed=[member.value for member in cls],
        )


# State machine transition map
TRANSITIONS = MappingProxyType(
    {
        OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
        OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
        OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
        OrderStatus.DELIVERED: frozenset(),  # Terminal
        OrderStatus.CANCELLED: frozenset(),  # Terminal
    }
)

# States from which the owner may cancel
OWNER_CANCELLABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def allowed_targets(status) -> frozenset:
    return TRANSITIONS[OrderStatus.parse(status)]


def can_transition(current, target) -> bool:
    """True when ``target`` is reachable in one step, or is ``current`` itself."""
    current = OrderStatus.parse(current)
    target = OrderStatus.parse(target)
    return current == target or target in TRANSITIONS[current]


def is_terminal(status) -> bool:
    return OrderStatus.parse(status) in TERMINAL_STATES


def owner_can_cancel(status) -> bool:
    return OrderStatus.parse(status) in OWNER_CANCELLABLE_STATES
