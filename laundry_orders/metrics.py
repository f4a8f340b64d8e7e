"""
Prometheus metrics: orders created, status transitions (applied and rejected),
lost update races, ratings.
"""
from prometheus_client import Counter, generate_latest

orders_created_total = Counter(
    "orders_created_total",
    "Total laundry orders placed by customers",
)
order_status_transitions_total = Counter(
    "order_status_transitions_total",
    "Total order status changes applied",
    ["from_status", "to_status"],
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total",
    "Total status changes rejected because the transition is not allowed",
    ["current_status", "attempted_status"],
)
order_update_conflicts_total = Counter(
    "order_update_conflicts_total",
    "Total order updates that lost a race against a concurrent update",
)
ratings_submitted_total = Counter(
    "ratings_submitted_total",
    "Total ratings left on orders",
)


def get_metrics_content_type():
    return "text/plain; charset=utf-8; version=0.0.4"


def get_metrics_bytes():
    return generate_latest()
