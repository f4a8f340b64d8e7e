"""
Order lifecycle state machine. Valid transitions enforce business rules.
"""
from laundry_orders.models import OrderStatus

# Current status -> allowed next statuses
VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.PICKED_UP, OrderStatus.CANCELLED}),
    OrderStatus.PICKED_UP: frozenset({OrderStatus.IN_PROGRESS}),
    OrderStatus.IN_PROGRESS: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERING}),
    OrderStatus.DELIVERING: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),  # terminal
    OrderStatus.CANCELLED: frozenset(),  # terminal
}

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, allowed in VALID_TRANSITIONS.items() if not allowed
)


def is_valid_transition(current_status: OrderStatus, new_status: OrderStatus) -> bool:
    """True if new_status is allowed right after current_status."""
    allowed = VALID_TRANSITIONS.get(current_status, frozenset())
    return new_status in allowed


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def next_statuses(current_status: OrderStatus) -> list[OrderStatus]:
    """Statuses an operator can move the order to, in lifecycle order."""
    allowed = VALID_TRANSITIONS.get(current_status, frozenset())
    return [s for s in OrderStatus if s in allowed]
