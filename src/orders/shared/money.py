"""Money value object for exact monetary amounts.

Amounts are ``Decimal`` in memory and canonical decimal strings at rest.
Binary floats are refused outright: ``0.1 + 0.2`` must never reach a total.
"""

from decimal import Decimal, InvalidOperation

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from orders.domain import orders

ZERO = Decimal("0")


def to_amount(value) -> Decimal:
    """Coerce ``value`` into a non-negative, finite ``Decimal``.

    Accepts ``Decimal``, ``int`` and numeric strings. Raises ``TypeError`` for
    floats and booleans, ``ValueError`` for anything unparsable, negative or
    non-finite.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary amounts must not be {type(value).__name__}: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal amount: {value!r}") from exc
    else:
        raise TypeError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    if amount < ZERO:
        raise ValueError(f"Amount must not be negative: {value!r}")
    return amount


def format_amount(value) -> str:
    """Canonical string form used for persistence (no exponent notation)."""
    return format(to_amount(value), "f")


@orders.value_object
class Money:
    """A non-negative amount, held as its canonical decimal string."""

    amount = String(required=True, max_length=64)

    @invariant.post
    def amount_must_be_exact_and_non_negative(self):
        try:
            to_amount(self.amount)
        except (TypeError, ValueError) as exc:
            raise ValidationError({"amount": [str(exc)]}) from exc

    @classmethod
    def of(cls, value) -> "Money":
        return cls(amount=format_amount(value))

    @classmethod
    def total_of(cls, amounts) -> "Money":
        """Exact sum of ``Money`` values; nothing sums to zero."""
        total = ZERO
        for money in amounts:
            total += money.value
        return cls.of(total)

    @property
    def value(self) -> Decimal:
        return to_amount(self.amount)

    def times(self, quantity: int) -> "Money":
        return Money.of(self.value * quantity)
