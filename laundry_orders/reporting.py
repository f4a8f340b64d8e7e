"""
Dashboard figures computed from a list of orders. Read-only: the input list
is neither mutated nor reordered.
"""
from collections.abc import Iterable
from datetime import date, datetime

import pytz
from pydantic import BaseModel

from laundry_orders.models import Order, OrderStatus

PENDING_STATUSES = frozenset({OrderStatus.PENDING})
ACTIVE_STATUSES = frozenset({
    OrderStatus.ACCEPTED,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY,
})
DELIVERING_STATUSES = frozenset({OrderStatus.DELIVERING})
COMPLETED_STATUSES = frozenset({OrderStatus.DELIVERED})
CANCELLED_STATUSES = frozenset({OrderStatus.CANCELLED})


class OrderSummary(BaseModel):
    pending_count: int = 0
    active_count: int = 0
    delivering_count: int = 0
    completed_count: int = 0
    cancelled_count: int = 0
    today_revenue_minor_units: int = 0


def local_date(moment: datetime, tz_name: str = "UTC") -> date:
    """Calendar day of `moment` in tz_name. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(pytz.timezone(tz_name)).date()


def today(tz_name: str = "UTC") -> date:
    return datetime.now(pytz.timezone(tz_name)).date()


def summarize(orders: Iterable[Order], as_of: date, tz_name: str = "UTC") -> OrderSummary:
    summary = OrderSummary()
    for order in orders:
        if order.status in PENDING_STATUSES:
            summary.pending_count += 1
        elif order.status in ACTIVE_STATUSES:
            summary.active_count += 1
        elif order.status in DELIVERING_STATUSES:
            summary.delivering_count += 1
        elif order.status in COMPLETED_STATUSES:
            summary.completed_count += 1
        elif order.status in CANCELLED_STATUSES:
            summary.cancelled_count += 1

        if local_date(order.created_at, tz_name) == as_of:
            summary.today_revenue_minor_units += order.price
    return summary
