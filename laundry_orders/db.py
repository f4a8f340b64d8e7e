"""
Async Postgres store: users, orders (items as JSONB) and ratings.
Status changes are a single conditional UPDATE so two concurrent transitions
from the same status cannot both win.
"""
import json
import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager

import asyncpg
from asyncpg.exceptions import UniqueViolationError

from laundry_orders.config import settings
from laundry_orders.errors import ConflictError, NotFoundError, PersistenceError
from laundry_orders.models import Order, OrderItem, OrderStatus, Rating, Role, User
from laundry_orders.order_state import TERMINAL_STATUSES
from laundry_orders.repository import OrderRepository

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        try:
            _pool = await asyncpg.create_pool(
                settings.database_url,
                min_size=1,
                max_size=5,
                command_timeout=60,
            )
        except (asyncpg.PostgresError, OSError) as e:
            logger.exception("Could not open Postgres pool")
            raise PersistenceError("database unavailable") from e
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                username VARCHAR(255) NOT NULL UNIQUE,
                password_hash TEXT NOT NULL DEFAULT '',
                role VARCHAR(20) NOT NULL,
                name TEXT NOT NULL,
                phone TEXT NOT NULL,
                address TEXT,
                rating REAL NOT NULL DEFAULT 5
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id SERIAL PRIMARY KEY,
                customer_id INT NOT NULL REFERENCES users(id),
                business_id INT NOT NULL REFERENCES users(id),
                delivery_id INT REFERENCES users(id),
                status VARCHAR(20) NOT NULL,
                items JSONB NOT NULL,
                pickup_address TEXT NOT NULL,
                delivery_address TEXT NOT NULL,
                pickup_time TIMESTAMPTZ NOT NULL,
                delivery_time TIMESTAMPTZ NOT NULL,
                price INT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_customer_id ON orders(customer_id);
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_delivery_id ON orders(delivery_id);
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS ratings (
                id SERIAL PRIMARY KEY,
                order_id INT NOT NULL REFERENCES orders(id),
                from_user_id INT NOT NULL REFERENCES users(id),
                to_user_id INT NOT NULL REFERENCES users(id),
                rating INT NOT NULL CHECK (rating BETWEEN 1 AND 5),
                comment TEXT
            );
        """)


def row_to_order(row: Mapping) -> Order:
    items = row["items"]
    if isinstance(items, str):
        items = json.loads(items)
    return Order(
        id=row["id"],
        customer_id=row["customer_id"],
        business_id=row["business_id"],
        delivery_id=row["delivery_id"],
        status=OrderStatus(row["status"]),
        items=[OrderItem(**i) for i in items],
        pickup_address=row["pickup_address"],
        delivery_address=row["delivery_address"],
        pickup_time=row["pickup_time"],
        delivery_time=row["delivery_time"],
        price=row["price"],
        created_at=row["created_at"],
    )


def row_to_user(row: Mapping) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        name=row["name"],
        phone=row["phone"],
        address=row["address"],
        rating=row["rating"],
    )


def row_to_rating(row: Mapping) -> Rating:
    return Rating(
        id=row["id"],
        order_id=row["order_id"],
        from_user_id=row["from_user_id"],
        to_user_id=row["to_user_id"],
        rating=row["rating"],
        comment=row["comment"],
    )


class PostgresRepository(OrderRepository):
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @asynccontextmanager
    async def _conn(self):
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except (ConflictError, NotFoundError):
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.exception("Postgres call failed")
            raise PersistenceError("database error") from e

    async def load_order(self, order_id: int) -> Order | None:
        async with self._conn() as conn:
            row = await conn.fetchrow("SELECT * FROM orders WHERE id = $1;", order_id)
        return row_to_order(row) if row else None

    async def load_all_orders(self) -> list[Order]:
        async with self._conn() as conn:
            rows = await conn.fetch("SELECT * FROM orders ORDER BY created_at DESC;")
        return [row_to_order(r) for r in rows]

    async def insert_order(self, order: Order) -> Order:
        items_json = json.dumps([i.model_dump(mode="json") for i in order.items])
        async with self._conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO orders (customer_id, business_id, delivery_id, status, items,
                    pickup_address, delivery_address, pickup_time, delivery_time, price, created_at)
                VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10, $11)
                RETURNING *;
                """,
                order.customer_id,
                order.business_id,
                order.delivery_id,
                order.status.value,
                items_json,
                order.pickup_address,
                order.delivery_address,
                order.pickup_time,
                order.delivery_time,
                order.price,
                order.created_at,
            )
        return row_to_order(row)

    async def save_order(
        self, order: Order, expected_prior_status: OrderStatus | None = None
    ) -> Order:
        async with self._conn() as conn:
            if expected_prior_status is None:
                row = await conn.fetchrow(
                    "UPDATE orders SET status = $1 WHERE id = $2 RETURNING *;",
                    order.status.value,
                    order.id,
                )
                if row is None:
                    raise NotFoundError(f"order {order.id} not found")
                return row_to_order(row)

            row = await conn.fetchrow(
                "UPDATE orders SET status = $1 WHERE id = $2 AND status = $3 RETURNING *;",
                order.status.value,
                order.id,
                expected_prior_status.value,
            )
            if row is None:
                exists = await conn.fetchval("SELECT 1 FROM orders WHERE id = $1;", order.id)
                if exists is None:
                    raise NotFoundError(f"order {order.id} not found")
                raise ConflictError(
                    f"order {order.id} is no longer {expected_prior_status.value}"
                )
        return row_to_order(row)

    async def assign_delivery(self, order_id: int, delivery_id: int) -> Order:
        async with self._conn() as conn:
            row = await conn.fetchrow(
                """
                UPDATE orders SET delivery_id = $1
                WHERE id = $2 AND delivery_id IS NULL AND status <> ALL($3::text[])
                RETURNING *;
                """,
                delivery_id,
                order_id,
                [s.value for s in TERMINAL_STATUSES],
            )
            if row is None:
                current = await conn.fetchrow(
                    "SELECT status, delivery_id FROM orders WHERE id = $1;", order_id
                )
                if current is None:
                    raise NotFoundError(f"order {order_id} not found")
                if current["delivery_id"] is not None:
                    raise ConflictError(f"order {order_id} already has a courier")
                raise ConflictError(f"order {order_id} is already {current['status']}")
        return row_to_order(row)

    async def load_user(self, user_id: int) -> User | None:
        async with self._conn() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1;", user_id)
        return row_to_user(row) if row else None

    async def load_users_by_role(self, role: Role) -> list[User]:
        async with self._conn() as conn:
            rows = await conn.fetch("SELECT * FROM users WHERE role = $1 ORDER BY id;", role.value)
        return [row_to_user(r) for r in rows]

    async def insert_user(self, user: User) -> User:
        async with self._conn() as conn:
            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (username, password_hash, role, name, phone, address, rating)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING *;
                    """,
                    user.username,
                    user.password_hash,
                    user.role.value,
                    user.name,
                    user.phone,
                    user.address,
                    user.rating,
                )
            except UniqueViolationError:
                raise ConflictError(f"username {user.username!r} is taken")
        return row_to_user(row)

    async def insert_rating(self, rating: Rating) -> Rating:
        async with self._conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO ratings (order_id, from_user_id, to_user_id, rating, comment)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING *;
                """,
                rating.order_id,
                rating.from_user_id,
                rating.to_user_id,
                rating.rating,
                rating.comment,
            )
        return row_to_rating(row)

    async def load_ratings_for_user(self, user_id: int) -> list[Rating]:
        async with self._conn() as conn:
            rows = await conn.fetch(
                "SELECT * FROM ratings WHERE to_user_id = $1 ORDER BY id;", user_id
            )
        return [row_to_rating(r) for r in rows]
