"""Order number generation.

Numbers look like ``ORD-20240115-007``: a fixed prefix, the placement date
and a per-day sequence, zero-padded to three digits and widened past 999.

Counting today's orders only gives a *hint* for the next sequence. Two
creators can read the same count before either writes, so the hint can never
decide uniqueness. The unique ``order_number`` on ``OrderNumberClaim`` does:
the claim is written in the same unit of work as the order, and a rejected
claim means another creator won the race. The generator then moves to the
next candidate, within a bounded number of attempts.
"""

import re
from datetime import date, datetime

import structlog
from protean.fields import Date, Identifier, String

from orders.domain import orders
from orders.errors import InvalidRequest, NumberGenerationExhausted
from orders.utils.config import get_number_max_attempts

logger = structlog.get_logger(__name__)

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_PATTERN = re.compile(rf"^{ORDER_NUMBER_PREFIX}-(\d{{8}})-(\d{{3}}|[1-9]\d{{3,}})$")


def format_order_number(business_date: date, sequence: int) -> str:
    if sequence < 1:
        raise ValueError(f"Sequence must be positive, got {sequence}")
    return f"{ORDER_NUMBER_PREFIX}-{business_date:%Y%m%d}-{sequence:03d}"


def parse_order_number(value: str) -> tuple[date, int]:
    """Split an order number into its date and sequence."""
    match = ORDER_NUMBER_PATTERN.match(value or "")
    if match is None:
        raise InvalidRequest("order_number", f"Malformed order number: {value!r}")

    try:
        business_date = datetime.strptime(match.group(1), "%Y%m%d").date()
    except ValueError as exc:
        raise InvalidRequest("order_number", f"Order number carries an impossible date: {value!r}") from exc

    sequence = int(match.group(2))
    if sequence < 1:
        raise InvalidRequest("order_number", f"Order number sequence must be positive: {value!r}")
    return business_date, sequence


def is_valid_order_number(value) -> bool:
    try:
        parse_order_number(value)
    except InvalidRequest:
        return False
    return True


class OrderNumberTaken(Exception):
    """A candidate number lost the race to another creator."""

    def __init__(self, order_number):
        super().__init__(f"Order number {order_number} is already taken")
        self.order_number = order_number


@orders.aggregate
class OrderNumberClaim:
    """Ledger entry for an issued order number.

    Claims are never deleted, so a number stays burnt even if its order is
    cancelled.
    """

    order_number = String(required=True, max_length=32, unique=True)
    order_id = Identifier(required=True)
    claimed_on = Date(required=True)


class OrderNumberGenerator:
    """Proposes candidate numbers and retries the write on collision.

    ``repository`` only needs a ``count_placed_on(date)`` method.
    """

    def __init__(self, repository, max_attempts=None):
        self._repository = repository
        self.max_attempts = max_attempts if max_attempts is not None else get_number_max_attempts()
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    def candidates(self, business_date: date):
        """Yield up to ``max_attempts`` numbers, starting after today's count."""
        start = self._repository.count_placed_on(business_date) + 1
        for offset in range(self.max_attempts):
            yield format_order_number(business_date, start + offset)

    def reserve(self, business_date: date, write):
        """Call ``write(candidate)`` until one candidate sticks.

        ``write`` must persist atomically and raise ``OrderNumberTaken`` when
        the store rejects the number. Its return value is passed through.
        """
        last_candidate = None
        for attempt, candidate in enumerate(self.candidates(business_date), start=1):
            last_candidate = candidate
            try:
                return write(candidate)
            except OrderNumberTaken:
                logger.info(
                    "Order number already taken, trying next candidate",
                    order_number=candidate,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                )

        logger.error(
            "Order number generation exhausted",
            business_date=business_date.isoformat(),
            attempts=self.max_attempts,
            last_candidate=last_candidate,
        )
        raise NumberGenerationExhausted(business_date, self.max_attempts, last_candidate)
