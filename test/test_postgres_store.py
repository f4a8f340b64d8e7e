"""
Scenario — Postgres store.

Runs the conditional writes against a real database: a stale status update
and a second courier assignment must both lose with ConflictError.

Requires: DATABASE_URL pointing at a scratch Postgres (e.g. docker compose up);
skipped otherwise. Tables are created if missing; rows are left in place.
"""
import asyncio
import os
import uuid
from datetime import datetime, timedelta, timezone

import asyncpg
import pytest

from laundry_orders.db import PostgresRepository, init_schema
from laundry_orders.errors import ConflictError
from laundry_orders.models import Order, OrderItem, OrderStatus, Role, User

DATABASE_URL = os.environ.get("DATABASE_URL")

pytestmark = pytest.mark.skipif(not DATABASE_URL, reason="DATABASE_URL not set")


async def _with_repo(scenario) -> None:
    pool = await asyncpg.create_pool(DATABASE_URL, min_size=1, max_size=2)
    try:
        await init_schema(pool)
        await scenario(PostgresRepository(pool))
    finally:
        await pool.close()


async def _seed(repo: PostgresRepository) -> tuple[User, User, User]:
    suffix = uuid.uuid4().hex[:8]
    users = []
    for name, role in [("customer", Role.CUSTOMER), ("pressing", Role.BUSINESS), ("courier", Role.DELIVERY)]:
        users.append(await repo.insert_user(User(
            username=f"{name}-{suffix}", role=role, name=name, phone="+212 600 000000",
        )))
    return tuple(users)


def _new_order(customer: User, business: User) -> Order:
    now = datetime.now(timezone.utc)
    return Order(
        customer_id=customer.id,
        business_id=business.id,
        items=[OrderItem(item="shirt", quantity=2, unit_price=500)],
        pickup_address="pickup",
        delivery_address="dropoff",
        pickup_time=now,
        delivery_time=now + timedelta(days=1),
        price=1000,
        created_at=now,
    )


def test_stale_status_update_conflicts():
    async def scenario(repo):
        customer, business, _ = await _seed(repo)
        order = await repo.insert_order(_new_order(customer, business))
        accepted = order.model_copy(update={"status": OrderStatus.ACCEPTED})

        first = await repo.save_order(accepted, expected_prior_status=OrderStatus.PENDING)
        assert first.status == OrderStatus.ACCEPTED
        with pytest.raises(ConflictError):
            await repo.save_order(accepted, expected_prior_status=OrderStatus.PENDING)
        assert (await repo.load_order(order.id)).status == OrderStatus.ACCEPTED

    asyncio.run(_with_repo(scenario))


def test_courier_assignment_is_set_once_and_only_on_open_orders():
    async def scenario(repo):
        customer, business, courier = await _seed(repo)
        order = await repo.insert_order(_new_order(customer, business))

        assigned = await repo.assign_delivery(order.id, courier.id)
        assert assigned.delivery_id == courier.id
        with pytest.raises(ConflictError):
            await repo.assign_delivery(order.id, courier.id)

        cancelled = await repo.insert_order(_new_order(customer, business))
        await repo.save_order(cancelled.model_copy(update={"status": OrderStatus.CANCELLED}))
        with pytest.raises(ConflictError):
            await repo.assign_delivery(cancelled.id, courier.id)
        assert (await repo.load_order(cancelled.id)).delivery_id is None

    asyncio.run(_with_repo(scenario))
