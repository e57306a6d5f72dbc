"""Order operations exposed to the outside world.

Each public method is one use case. Reads go straight to the repository;
writes load the aggregate, let it decide, then persist through the
repository contracts (``insert`` for placement, ``save_transition`` for
status changes) so that numbering and concurrent updates stay safe.

Privileged access to ``set_status`` and ``list_orders_by_status`` is
enforced by whatever sits in front of this service.
"""

from collections.abc import Mapping
from typing import NamedTuple

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from orders.catalog import CatalogLookup
from orders.errors import ConcurrentModification, InvalidRequest, InvalidTransition, NotFound
from orders.order.lifecycle import OrderStatus
from orders.order.numbering import OrderNumberGenerator
from orders.order.order import Order, check_quantity
from orders.shared.clock import as_utc, utc_now

logger = structlog.get_logger(__name__)


class LineItemRequest(NamedTuple):
    product_ref: str
    quantity: int


def _normalize_requests(line_item_requests):
    """Accept ``(product_ref, quantity)`` pairs or mappings with those keys."""
    requests = list(line_item_requests or [])
    if not requests:
        raise InvalidRequest("line_items", "An order needs at least one line item")

    normalized = []
    for position, request in enumerate(requests, start=1):
        if isinstance(request, Mapping):
            product_ref, quantity = request.get("product_ref"), request.get("quantity")
        else:
            try:
                if isinstance(request, str):
                    raise TypeError("a bare string is not a line item")
                product_ref, quantity = request
            except (TypeError, ValueError) as exc:
                raise InvalidRequest(
                    "line_items", "Each line item is a (product_ref, quantity) pair", position=position
                ) from exc

        if product_ref is None or not str(product_ref).strip():
            raise InvalidRequest("product_ref", "product_ref is required", position=position)
        check_quantity(quantity, position)
        normalized.append(LineItemRequest(str(product_ref).strip(), quantity))
    return normalized


def _require(field, value):
    if value is None or not str(value).strip():
        raise InvalidRequest(field, f"{field} is required")


class OrderService:
    """Creates, reads and transitions orders.

    Args:
        catalog: Resolves product refs to their current name and unit price.
        clock: Zero-argument callable returning the current time. Defaults
            to UTC wall-clock time.
        max_number_attempts: Override for the number generator's retry
            budget; falls back to ``ORDERS_NUMBER_MAX_ATTEMPTS``.
    """

    def __init__(self, catalog: CatalogLookup, clock=None, max_number_attempts=None):
        self.catalog = catalog
        self.clock = clock or utc_now
        self.max_number_attempts = max_number_attempts

    @property
    def repository(self):
        return current_domain.repository_for(Order)

    def _now(self):
        return as_utc(self.clock())

    def _load(self, order_id) -> Order:
        order = self.repository.find(order_id)
        if order is None:
            raise NotFound("Order", order_id)
        return order

    def _save_transition(self, order, expected_revision):
        try:
            self.repository.save_transition(order, expected_revision)
        except ConcurrentModification:
            logger.warning(
                "Concurrent modification detected",
                order_number=order.order_number,
                expected_revision=expected_revision,
                requested_status=order.status,
            )
            raise

    # -------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------
    def create_order(self, owner_id, line_item_requests, shipping_address_ref, payment_method_tag) -> Order:
        """Place a new Pending order priced from the catalogue as of now.

        Nothing is persisted unless every product resolves and an order
        number is secured.
        """
        _require("owner_id", owner_id)
        _require("shipping_address_ref", shipping_address_ref)
        _require("payment_method_tag", payment_method_tag)
        requests = _normalize_requests(line_item_requests)

        priced_items = []
        for request in requests:
            entry = self.catalog.resolve(request.product_ref)
            priced_items.append(
                {
                    "product_ref": request.product_ref,
                    "product_name": entry.name,
                    "unit_price": entry.unit_price,
                    "quantity": request.quantity,
                }
            )

        placed_at = self._now()
        repository = self.repository
        generator = OrderNumberGenerator(repository, max_attempts=self.max_number_attempts)

        def write(candidate):
            try:
                order = Order.place(
                    owner_id=owner_id,
                    order_number=candidate,
                    line_items=priced_items,
                    shipping_address_ref=shipping_address_ref,
                    payment_method_tag=payment_method_tag,
                    placed_at=placed_at,
                )
            except ValidationError as exc:
                raise InvalidRequest("order", "Order failed validation", errors=exc.messages) from exc
            return repository.insert(order)

        order = generator.reserve(placed_at.date(), write)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=str(order.owner_id),
            item_count=len(order.line_items),
            total=order.total_amount,
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_order(self, order_id, caller) -> Order:
        order = self._load(order_id)
        order.ensure_visible_to(caller)
        return order

    def get_order_by_number(self, order_number, caller) -> Order:
        order = self.repository.find_by_number(order_number)
        if order is None:
            raise NotFound("Order", order_number)
        order.ensure_visible_to(caller)
        return order

    def list_orders_for_owner(self, owner_id, limit=None, offset=0) -> list[Order]:
        """Orders of one owner, newest first; pass ``limit`` to page."""
        _require("owner_id", owner_id)
        return self.repository.for_owner(owner_id, limit=limit, offset=offset)

    def list_orders_by_status(self, status, limit=None, offset=0) -> list[Order]:
        """Orders currently in ``status``, newest first; pass ``limit`` to page."""
        status = OrderStatus.parse(status)
        return self.repository.with_status(status.value, limit=limit, offset=offset)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def set_status(self, order_id, new_status) -> Order:
        """Privileged status change along the transition table.

        Setting the status an order already has is accepted and writes
        nothing.
        """
        target = OrderStatus.parse(new_status)
        order = self._load(order_id)
        expected_revision = order.revision
        previous = order.status

        try:
            changed = order.transition_to(target, at=self._now())
        except InvalidTransition:
            logger.info(
                "Status change rejected",
                order_number=order.order_number,
                current_status=previous,
                requested_status=target.value,
            )
            raise

        if not changed:
            logger.debug("Status unchanged", order_number=order.order_number, status=previous)
            return order

        self._save_transition(order, expected_revision)
        logger.info(
            "Order status changed",
            order_number=order.order_number,
            previous_status=previous,
            new_status=order.status,
            revision=order.revision,
        )
        return order

    def cancel_own_order(self, order_id, caller) -> Order:
        """Cancel an order on behalf of its owner while it is still early enough."""
        order = self._load(order_id)
        expected_revision = order.revision
        previous = order.status

        order.cancel_by_owner(caller, at=self._now())

        self._save_transition(order, expected_revision)
        logger.info(
            "Order cancelled by owner",
            order_number=order.order_number,
            previous_status=previous,
            caller_id=caller.caller_id,
        )
        return order
