"""
Scenario — Normal flow.

A customer places an order, the pressing accepts it and assigns a courier,
the order walks PENDING → ACCEPTED → PICKED_UP → IN_PROGRESS → READY →
DELIVERING → DELIVERED, then the customer rates the courier.
"""
from _helper import make_world, order_payload, run

from laundry_orders.models import OrderStatus

EXPECTED_SEQUENCE = [
    OrderStatus.ACCEPTED,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_PROGRESS,
    OrderStatus.READY,
    OrderStatus.DELIVERING,
    OrderStatus.DELIVERED,
]


def test_order_walks_full_lifecycle_and_gets_rated():
    world = make_world()
    engine = world.lifecycle

    order = run(engine.create_order(world.customer, order_payload(world.business.id)))
    assert order.status == OrderStatus.PENDING
    assert order.price == 1000
    assert order.delivery_id is None

    seen = []
    for status in EXPECTED_SEQUENCE:
        order = run(engine.update_order_status(world.business, order.id, status))
        seen.append(order.status)
        if status == OrderStatus.ACCEPTED:
            order = run(engine.assign_delivery(world.business, order.id, world.courier.id))
            assert order.delivery_id == world.courier.id
    assert seen == EXPECTED_SEQUENCE

    # the courier now sees the order it delivered
    assert [o.id for o in run(engine.list_orders(world.courier))] == [order.id]

    rating = run(engine.rate_order(
        world.customer, order.id, {"to_user_id": world.courier.id, "rating": 5, "comment": "Rapide"}
    ))
    assert rating.from_user_id == world.customer.id
    assert rating.to_user_id == world.courier.id
    assert run(engine.list_ratings_for_user(world.customer, world.courier.id)) == [rating]


def test_order_cancelled_after_acceptance_is_terminal():
    world = make_world()
    engine = world.lifecycle
    order = run(engine.create_order(world.customer, order_payload(world.business.id)))

    run(engine.update_order_status(world.business, order.id, OrderStatus.ACCEPTED))
    order = run(engine.update_order_status(world.business, order.id, "cancelled"))

    assert order.status == OrderStatus.CANCELLED
    stored = run(engine.get_order(world.customer, order.id))
    assert stored.status == OrderStatus.CANCELLED
