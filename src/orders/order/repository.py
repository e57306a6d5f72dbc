"""Repository for the Order aggregate.

Besides the standard ``add``/``get`` it provides the three storage contracts
order placement and transitions rely on:

* ``insert`` writes the order, its line items and its number claim in one
  unit of work, translating a uniqueness violation into ``OrderNumberTaken``;
* ``save_transition`` relies on the aggregate version check Protean runs on
  every save, surfacing a lost race as ``ConcurrentModification``;
* lookups by number, owner, status and placement date.
"""

from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from sqlalchemy.exc import IntegrityError

from orders.domain import orders
from orders.errors import ConcurrentModification
from orders.order.numbering import OrderNumberClaim, OrderNumberTaken
from orders.order.order import Order

# Unbounded listings are read in batches of this size
BATCH_SIZE = 500


@orders.repository(part_of=Order)
class OrderRepository:
    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def insert(self, order: Order) -> Order:
        """Persist a freshly placed order together with its number claim.

        Raises ``OrderNumberTaken`` if the number was issued to someone else
        first; nothing of this order is persisted in that case.
        """
        claims = current_domain.repository_for(OrderNumberClaim)
        try:
            with UnitOfWork():
                try:
                    claims._dao.create(
                        order_number=order.order_number,
                        order_id=str(order.id),
                        claimed_on=order.placed_on,
                    )
                except ValidationError as exc:
                    raise OrderNumberTaken(order.order_number) from exc

                self.add(order)
        except IntegrityError as exc:
            # SQL providers enforce the unique index at commit time
            raise OrderNumberTaken(order.order_number) from exc
        return order

    def save_transition(self, order: Order, expected_revision: int) -> Order:
        """Persist a status change only if nobody else changed the order meanwhile.

        Protean compares the loaded aggregate version with the stored one on
        save; a mismatch means another writer got there first.
        """
        try:
            with UnitOfWork():
                self.add(order)
        except ExpectedVersionError as exc:
            raise ConcurrentModification(order.order_number, expected_revision, order.status) from exc
        return order

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def find(self, order_id) -> Order | None:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            return None

    def find_by_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def _newest_first(self, limit, offset, **filters) -> list[Order]:
        query = self._dao.query.filter(**filters).order_by("-created_at")
        if limit is not None:
            return query.limit(limit).offset(offset).all().items

        found = []
        while True:
            batch = query.limit(BATCH_SIZE).offset(offset).all().items
            found.extend(batch)
            if len(batch) < BATCH_SIZE:
                return found
            offset += BATCH_SIZE

    def for_owner(self, owner_id, limit=None, offset=0) -> list[Order]:
        """Orders placed by ``owner_id``, newest first. All of them unless ``limit`` is given."""
        return self._newest_first(limit, offset, owner_id=str(owner_id))

    def with_status(self, status: str, limit=None, offset=0) -> list[Order]:
        """Orders currently in ``status``, newest first. All of them unless ``limit`` is given."""
        return self._newest_first(limit, offset, status=status)

    def count_placed_on(self, business_date) -> int:
        return self._dao.query.filter(placed_on=business_date).all().total
