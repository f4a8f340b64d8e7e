"""Key store failures surface as PersistenceError; runs without Redis."""
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from _helper import run

from laundry_orders import redis_client
from laundry_orders.errors import PersistenceError


class DownRedis:
    async def set(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def get(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError("connection refused")


@pytest.fixture
def down(monkeypatch):
    async def fake_get_redis():
        return DownRedis()

    monkeypatch.setattr(redis_client, "get_redis", fake_get_redis)


def test_claim_wraps_redis_errors(down):
    with pytest.raises(PersistenceError):
        run(redis_client.claim_idempotency_key("idempotency:orders:1:k"))


def test_remember_and_release_wrap_redis_errors(down):
    with pytest.raises(PersistenceError):
        run(redis_client.remember_order("idempotency:orders:1:k", 7))
    with pytest.raises(PersistenceError):
        run(redis_client.release_idempotency_key("idempotency:orders:1:k"))
