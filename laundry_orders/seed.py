"""
Insert the sample pressing operators when the store has no business user yet.
Run: python -m laundry_orders.seed
"""
import asyncio
import logging
import sys

from laundry_orders.models import Role, User
from laundry_orders.repository import OrderRepository

logger = logging.getLogger(__name__)

SAMPLE_BUSINESSES = [
    User(
        username="pressing_casablanca",
        role=Role.BUSINESS,
        name="Pressing Royal Casablanca",
        phone="+212 522 123456",
        address="123 Boulevard Mohammed V, Casablanca",
    ),
    User(
        username="pressing_rabat",
        role=Role.BUSINESS,
        name="Pressing Express Rabat",
        phone="+212 537 234567",
        address="45 Avenue Hassan II, Rabat",
    ),
    User(
        username="pressing_marrakech",
        role=Role.BUSINESS,
        name="Pressing Medina Marrakech",
        phone="+212 524 345678",
        address="78 Rue de la Kasbah, Marrakech",
    ),
]


async def seed_sample_businesses(repo: OrderRepository) -> list[User]:
    """Returns the users inserted (empty when businesses already exist)."""
    if await repo.load_users_by_role(Role.BUSINESS):
        return []
    logger.info("No business users found, inserting %d samples", len(SAMPLE_BUSINESSES))
    return [await repo.insert_user(u) for u in SAMPLE_BUSINESSES]


async def _main() -> None:
    from laundry_orders.db import PostgresRepository, close_pool, get_pool, init_schema

    pool = await get_pool()
    try:
        await init_schema(pool)
        inserted = await seed_sample_businesses(PostgresRepository(pool))
        logger.info("Inserted %d business user(s)", len(inserted))
    finally:
        await close_pool()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        stream=sys.stdout,
    )
    asyncio.run(_main())
