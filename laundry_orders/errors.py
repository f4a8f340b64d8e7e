"""
Failure kinds raised by the order engine. Callers branch on the class (or its
`code`), never on the message text.
"""
from laundry_orders.models import OrderStatus


class OrderError(Exception):
    code = "order_error"

    def __init__(self, message: str = "", details: list | None = None):
        self.message = message
        self.details = details or []
        super().__init__(message)


class ValidationError(OrderError):
    """Malformed request; the caller can correct it and try again."""
    code = "validation_error"


class NotFoundError(OrderError):
    code = "not_found"


class ForbiddenError(OrderError):
    """Authenticated, but the actor's role does not allow the operation."""
    code = "forbidden"


class IllegalTransitionError(OrderError):
    """Raised when an order status transition is not in the table."""
    code = "illegal_transition"

    def __init__(self, current_status: OrderStatus, new_status: OrderStatus):
        self.current_status = current_status
        self.new_status = new_status
        super().__init__(
            f"cannot move order from {current_status.value} to {new_status.value}"
        )


class ConflictError(OrderError):
    """Lost a race against a concurrent update. Safe to retry after re-reading."""
    code = "conflict"


class PersistenceError(OrderError):
    code = "persistence_error"
