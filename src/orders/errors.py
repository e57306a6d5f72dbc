"""Error taxonomy for the Orders domain.

Every failure an operation can surface belongs to exactly one ``ErrorKind``.
Callers switch on ``error.kind`` (or catch the concrete subclass) and read
``error.context`` to explain the failure without re-querying.
"""

from enum import Enum


class ErrorKind(Enum):
    INVALID_REQUEST = "InvalidRequest"
    NOT_FOUND = "NotFound"
    FORBIDDEN = "Forbidden"
    INVALID_TRANSITION = "InvalidTransition"
    CONCURRENT_MODIFICATION = "ConcurrentModification"
    NUMBER_GENERATION_EXHAUSTED = "NumberGenerationExhausted"


class OrderingError(Exception):
    """Base class for all errors raised by order operations."""

    kind: ErrorKind
    retryable = False

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            **self.context,
        }

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class InvalidRequest(OrderingError):
    """The request itself is malformed: empty items, bad quantity, blank refs."""

    kind = ErrorKind.INVALID_REQUEST

    def __init__(self, field, message, **context):
        super().__init__(message, field=field, **context)


class NotFound(OrderingError):
    """An unknown product, order id, or order number."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource, key):
        super().__init__(f"{resource} {key} not found", resource=resource, key=str(key))


class Forbidden(OrderingError):
    """The caller neither owns the order nor holds elevated rights."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, order_number, caller_id, action):
        super().__init__(
            f"Caller {caller_id} may not {action} order {order_number}",
            order_number=order_number,
            caller_id=str(caller_id),
            action=action,
        )


class InvalidTransition(OrderingError):
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, order_number, current_status, requested_status, reason=None):
        message = f"Cannot transition order {order_number} from {current_status} to {requested_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            order_number=order_number,
            current_status=current_status,
            requested_status=requested_status,
        )


class ConcurrentModification(OrderingError):
    """The order changed between read and write; re-read and try again."""

    kind = ErrorKind.CONCURRENT_MODIFICATION
    retryable = True

    def __init__(self, order_number, expected_revision, requested_status):
        super().__init__(
            f"Order {order_number} was modified concurrently (expected revision {expected_revision})",
            order_number=order_number,
            expected_revision=expected_revision,
            requested_status=requested_status,
        )


class NumberGenerationExhausted(OrderingError):
    """Every candidate order number within the retry budget was already taken.

    This signals contention far beyond expected load and is not meant to be
    retried by end users.
    """

    kind = ErrorKind.NUMBER_GENERATION_EXHAUSTED

    def __init__(self, business_date, attempts, last_candidate):
        super().__init__(
            f"Could not issue an order number for {business_date} after {attempts} attempts "
            f"(last candidate {last_candidate})",
            business_date=str(business_date),
            attempts=attempts,
            requested_number=last_candidate,
        )
