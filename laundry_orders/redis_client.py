import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from redis.exceptions import RedisError

from laundry_orders.config import settings
from laundry_orders.errors import PersistenceError

logger = logging.getLogger(__name__)

_redis: redis.Redis | None = None

IN_FLIGHT = "pending"


async def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


@asynccontextmanager
async def _client():
    try:
        yield await get_redis()
    except RedisError as e:
        logger.exception("Redis call failed")
        raise PersistenceError("idempotency store unavailable") from e


def idempotency_key(actor_id: int, client_key: str) -> str:
    return f"idempotency:orders:{actor_id}:{client_key}"


async def claim_idempotency_key(key: str, ttl_seconds: int | None = None) -> str | None:
    """
    Returns None if this request is the first to use the key (caller proceeds).
    Otherwise returns what is stored: IN_FLIGHT while the first request runs,
    then the id of the order it created.
    Uses SETNX: set if not exists. If we set it, we're first.
    """
    ttl = ttl_seconds or settings.idempotency_ttl_seconds
    async with _client() as r:
        was_set = await r.set(key, IN_FLIGHT, nx=True, ex=ttl)
        if was_set:
            return None
        return await r.get(key) or IN_FLIGHT


async def remember_order(key: str, order_id: int, ttl_seconds: int | None = None) -> None:
    async with _client() as r:
        await r.set(key, str(order_id), ex=ttl_seconds or settings.idempotency_ttl_seconds)


async def release_idempotency_key(key: str) -> None:
    """Forget a claimed key so the client can retry."""
    async with _client() as r:
        await r.delete(key)
