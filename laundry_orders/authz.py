"""
Role-based access rules for orders. Every check is a pure predicate over the
actor and the order as loaded; nothing here touches the store.
"""
from laundry_orders.config import settings
from laundry_orders.errors import ForbiddenError
from laundry_orders.models import Actor, Order, Role


def _business_owns(actor: Actor, order: Order) -> bool:
    if not settings.business_scoped_orders:
        return True
    return order.business_id == actor.id


def can_read(actor: Actor, order: Order) -> bool:
    if actor.role == Role.BUSINESS:
        return _business_owns(actor, order)
    if actor.role == Role.CUSTOMER:
        return order.customer_id == actor.id
    if actor.role == Role.DELIVERY:
        return order.delivery_id is not None and order.delivery_id == actor.id
    return False


def can_write(actor: Actor, order: Order) -> bool:
    """Status changes and courier assignment go through the pressing operator only."""
    if actor.role == Role.BUSINESS:
        return _business_owns(actor, order)
    return False


def can_create(actor: Actor) -> bool:
    return actor.role == Role.CUSTOMER


def visible_orders(actor: Actor, orders: list[Order]) -> list[Order]:
    return [o for o in orders if can_read(actor, o)]


def require_write(actor: Actor, order: Order) -> None:
    if not can_write(actor, order):
        raise ForbiddenError(
            f"{actor.role.value} {actor.id} may not modify order {order.id}"
        )


def require_create(actor: Actor) -> None:
    if not can_create(actor):
        raise ForbiddenError("only customers can place orders")


def require_role(actor: Actor, role: Role) -> None:
    if actor.role != role:
        raise ForbiddenError(f"restricted to {role.value} users")
