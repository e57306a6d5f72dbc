"""Order aggregate, the core of the orders domain.

An Order is placed once, with line items whose product name and unit price
are snapshotted from the catalogue at that moment. From then on the only way
to change an order is to move its status along the lifecycle table
(see ``orders.order.lifecycle``); line items and the total never change.

Monetary fields are stored as canonical decimal strings and exposed as
``Money`` value objects through read-only properties.
"""

from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String

from orders.domain import orders
from orders.errors import Forbidden, InvalidRequest, InvalidTransition
from orders.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from orders.order.lifecycle import OWNER_CANCELLABLE_STATES, TRANSITIONS, OrderStatus
from orders.order.numbering import is_valid_order_number
from orders.shared.clock import as_utc, utc_now
from orders.shared.money import Money


class CancellationActor(Enum):
    OWNER = "Owner"
    ADMIN = "Admin"


def _require_text(field, value):
    if value is None or not str(value).strip():
        raise InvalidRequest(field, f"{field} is required")
    return str(value).strip()


def check_quantity(quantity, position):
    """Quantities are plain integers of at least one."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidRequest("quantity", f"Quantity must be an integer, got {quantity!r}", position=position)
    if quantity < 1:
        raise InvalidRequest("quantity", f"Quantity must be at least 1, got {quantity}", position=position)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@orders.entity(part_of="Order")
class LineItem:
    """A product and quantity on an order, priced at placement time.

    ``product_ref`` may stop resolving in the catalogue later on; the name and
    unit price snapshots keep the line item meaningful regardless.
    """

    position = Integer(required=True, min_value=1)
    product_ref = Identifier(required=True)
    product_name_snapshot = String(required=True, max_length=255)
    unit_price_snapshot = String(required=True, max_length=64)  # serialized Decimal
    quantity = Integer(required=True, min_value=1)
    subtotal = String(required=True, max_length=64)  # serialized Decimal

    @invariant.post
    def subtotal_is_unit_price_times_quantity(self):
        if self.unit_price_snapshot is None or self.quantity is None or self.subtotal is None:
            return
        expected = self.unit_price.times(self.quantity)
        if self.line_total.value != expected.value:
            raise ValidationError(
                {"subtotal": [f"Subtotal {self.subtotal} does not equal {self.unit_price_snapshot} x {self.quantity}"]}
            )

    @property
    def unit_price(self) -> Money:
        return Money(amount=self.unit_price_snapshot)

    @property
    def line_total(self) -> Money:
        return Money(amount=self.subtotal)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@orders.aggregate
class Order:
    order_number = String(required=True, max_length=32, unique=True)
    owner_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    line_items = HasMany(LineItem)
    total_amount = String(required=True, max_length=64)  # serialized Decimal
    shipping_address_ref = String(required=True, max_length=255)
    payment_method_tag = String(required=True, max_length=50)
    placed_on = Date(required=True)
    revision = Integer(default=0, min_value=0)
    created_at = DateTime(required=True)
    updated_at = DateTime(required=True)

    @invariant.post
    def total_equals_sum_of_subtotals(self):
        if not self.line_items or self.total_amount is None:
            return
        expected = Money.total_of(item.line_total for item in self.line_items)
        if self.total.value != expected.value:
            raise ValidationError(
                {
                    "total_amount": [
                        f"Total {self.total_amount} does not equal the sum of subtotals {expected.amount}"
                    ]
                }
            )

    @invariant.post
    def order_number_is_well_formed(self):
        if self.order_number is not None and not is_valid_order_number(self.order_number):
            raise ValidationError({"order_number": [f"Malformed order number: {self.order_number}"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        owner_id,
        order_number,
        line_items,
        shipping_address_ref,
        payment_method_tag,
        placed_at=None,
    ):
        """Assemble a new Pending order.

        Args:
            owner_id: The actor placing the order.
            order_number: A candidate number from the number generator.
            line_items: List of dicts with product_ref, product_name,
                        unit_price (Decimal) and quantity, in display order.
            shipping_address_ref: Opaque reference, validated upstream.
            payment_method_tag: Opaque tag, validated upstream.
            placed_at: Placement time; defaults to now (UTC).
        """
        owner_id = _require_text("owner_id", owner_id)
        shipping_address_ref = _require_text("shipping_address_ref", shipping_address_ref)
        payment_method_tag = _require_text("payment_method_tag", payment_method_tag)
        if not line_items:
            raise InvalidRequest("line_items", "An order needs at least one line item")

        now = as_utc(placed_at) if placed_at else utc_now()

        items = []
        for position, item_data in enumerate(line_items, start=1):
            quantity = item_data["quantity"]
            check_quantity(quantity, position)
            try:
                unit_price = Money.of(item_data["unit_price"])
            except (TypeError, ValueError) as exc:
                raise InvalidRequest("unit_price", str(exc), position=position) from exc
            items.append(
                LineItem(
                    position=position,
                    product_ref=_require_text("product_ref", item_data["product_ref"]),
                    product_name_snapshot=item_data["product_name"],
                    unit_price_snapshot=unit_price.amount,
                    quantity=quantity,
                    subtotal=unit_price.times(quantity).amount,
                )
            )

        total = Money.total_of(item.line_total for item in items)

        order = cls(
            order_number=order_number,
            owner_id=owner_id,
            status=OrderStatus.PENDING.value,
            line_items=items,
            total_amount=total.amount,
            shipping_address_ref=shipping_address_ref,
            payment_method_tag=payment_method_tag,
            placed_on=now.date(),
            revision=0,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_id=str(owner_id),
                total_amount=order.total_amount,
                item_count=len(items),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def total(self) -> Money:
        return Money(amount=self.total_amount)

    @property
    def items_in_order(self):
        """Line items in the order they were requested."""
        return sorted(self.line_items, key=lambda item: item.position)

    def ensure_visible_to(self, caller):
        if not caller.can_view(self.owner_id):
            raise Forbidden(self.order_number, caller.caller_id, "view")

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def transition_to(self, new_status, at=None):
        """Privileged set-status along the transition table.

        Returns False when ``new_status`` is the current status (an accepted
        no-op), True when the status changed.
        """
        current = self.current_status
        target = OrderStatus.parse(new_status)
        if target == current:
            return False
        if target not in TRANSITIONS[current]:
            raise InvalidTransition(self.order_number, current.value, target.value)

        self._move_to(current, target, at, CancellationActor.ADMIN)
        return True

    def cancel_by_owner(self, caller, at=None):
        """Owner-initiated cancellation, only while Pending or Confirmed."""
        if not caller.owns(self.owner_id):
            raise Forbidden(self.order_number, caller.caller_id, "cancel")

        current = self.current_status
        if current not in OWNER_CANCELLABLE_STATES:
            raise InvalidTransition(
                self.order_number,
                current.value,
                OrderStatus.CANCELLED.value,
                reason="owners may only cancel Pending or Confirmed orders",
            )

        self._move_to(current, OrderStatus.CANCELLED, at, CancellationActor.OWNER)

    def _move_to(self, current, target, at, actor):
        now = as_utc(at) if at else utc_now()

        with atomic_change(self):
            self.status = target.value
            self.updated_at = now
            self.revision = (self.revision or 0) + 1

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
        if target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    previous_status=current.value,
                    cancelled_by=actor.value,
                    cancelled_at=now,
                )
            )
