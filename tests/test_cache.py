import json
import pytest
import redis
from decimal import Decimal

from shopcart.cart.cache import CartCache
from shopcart.cart.schemas import CartLine
from shopcart.core.exceptions import CacheUnavailableError
from shopcart.services.cache_backends import MemoryCacheStore, RedisCacheStore, build_cache_store


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


LINE = CartLine(product_id=1, name="Arduino Uno", price=Decimal("100.00"), quantity=2)


def test_cart_cache_computes_on_miss_then_serves_cached():
    cache = CartCache(MemoryCacheStore(), key_prefix="user_cart:", ttl_seconds=3600)
    calls = []

    def compute():
        calls.append(1)
        return [LINE]

    assert cache.get("u1", compute) == [LINE]
    assert cache.get("u1", compute) == [LINE]
    assert len(calls) == 1


def test_cart_cache_caches_empty_carts():
    store = MemoryCacheStore()
    cache = CartCache(store, key_prefix="user_cart:", ttl_seconds=60)

    assert cache.get("u1", lambda: []) == []
    assert store.get("user_cart:u1") == []


def test_invalidate_forces_recompute():
    cache = CartCache(MemoryCacheStore(), key_prefix="user_cart:", ttl_seconds=60)
    cache.get("u1", lambda: [LINE])

    cache.invalidate("u1")

    assert cache.get("u1", lambda: []) == []


def test_refresh_overwrites_entry():
    store = MemoryCacheStore()
    cache = CartCache(store, key_prefix="user_cart:", ttl_seconds=60)
    cache.refresh("u1", [LINE])

    assert store.get("user_cart:u1") == [
        {"product_id": 1, "name": "Arduino Uno", "price": "100.00", "quantity": 2}
    ]
    assert cache.get("u1", lambda: []) == [LINE]


def test_memory_store_expires_entries():
    clock = FakeClock()
    store = MemoryCacheStore(clock=clock)
    store.put("k", [1], ttl=60)

    clock.now += 59
    assert store.get("k") == [1]
    clock.now += 1
    assert store.get("k") is None
    assert store.cache_stats["misses"] == 1


def test_memory_store_forget_missing_key_is_noop():
    store = MemoryCacheStore()
    store.forget("missing")
    assert store.cache_stats["deletes"] == 0


def test_memory_remember_drops_value_computed_across_a_write():
    store = MemoryCacheStore()

    def compute_while_writer_commits():
        snapshot = [{"quantity": 2}]
        # The writer invalidates and repopulates before this read finishes
        store.forget("k")
        store.put("k", [{"quantity": 5}], 60)
        return snapshot

    assert store.remember("k", 60, compute_while_writer_commits) == [{"quantity": 2}]
    assert store.get("k") == [{"quantity": 5}]
    assert store.cache_stats["discarded"] == 1


def test_memory_remember_drops_value_computed_across_an_invalidation():
    store = MemoryCacheStore()

    def compute_while_invalidated():
        store.forget("k")
        return ["stale"]

    store.remember("k", 60, compute_while_invalidated)

    assert store.get("k") is None


@pytest.fixture
def redis_client(mocker):
    return mocker.MagicMock(spec=redis.Redis)


@pytest.fixture
def pipe(redis_client, mocker):
    pipe = mocker.MagicMock()
    redis_client.pipeline.return_value.__enter__.return_value = pipe
    return pipe


def test_redis_remember_miss_computes_and_sets(redis_client, pipe):
    redis_client.mget.return_value = [None, b"3"]
    pipe.get.return_value = b"3"
    store = RedisCacheStore(redis_client)

    value = store.remember("user_cart:u1", 3600, lambda: [{"product_id": 1}])

    assert value == [{"product_id": 1}]
    redis_client.mget.assert_called_once_with("user_cart:u1", "user_cart:u1:version")
    pipe.watch.assert_called_once_with("user_cart:u1:version")
    pipe.setex.assert_called_once_with("user_cart:u1", 3600, json.dumps([{"product_id": 1}]).encode())
    pipe.execute.assert_called_once()


def test_redis_remember_hit_skips_compute(redis_client, pipe):
    redis_client.mget.return_value = [b'[{"product_id": 1}]', b"3"]
    store = RedisCacheStore(redis_client)

    value = store.remember("user_cart:u1", 3600, lambda: pytest.fail("should not compute"))

    assert value == [{"product_id": 1}]
    pipe.setex.assert_not_called()


def test_redis_remember_skips_store_when_version_moved(redis_client, pipe):
    redis_client.mget.return_value = [None, b"3"]
    pipe.get.return_value = b"4"
    store = RedisCacheStore(redis_client)

    assert store.remember("user_cart:u1", 60, lambda: ["stale"]) == ["stale"]
    pipe.multi.assert_not_called()
    pipe.setex.assert_not_called()


def test_redis_remember_skips_store_on_watch_error(redis_client, pipe):
    redis_client.mget.return_value = [None, None]
    pipe.get.return_value = None
    pipe.execute.side_effect = redis.WatchError("version changed")
    store = RedisCacheStore(redis_client)

    assert store.remember("user_cart:u1", 60, lambda: ["stale"]) == ["stale"]


def test_redis_read_failure_falls_back_to_storage(redis_client):
    redis_client.mget.side_effect = redis.ConnectionError("down")
    store = RedisCacheStore(redis_client)

    assert store.remember("user_cart:u1", 60, lambda: ["fresh"]) == ["fresh"]


def test_redis_put_bumps_version_with_the_write(redis_client, pipe):
    store = RedisCacheStore(redis_client)

    store.put("user_cart:u1", [], 60)

    pipe.incr.assert_called_once_with("user_cart:u1:version")
    pipe.setex.assert_called_once_with("user_cart:u1", 60, b"[]")


def test_redis_write_failure_is_logged_not_raised(redis_client, pipe):
    pipe.execute.side_effect = redis.ConnectionError("down")
    store = RedisCacheStore(redis_client)

    store.put("user_cart:u1", [], 60)


def test_redis_forget_bumps_version_with_the_delete(redis_client, pipe):
    store = RedisCacheStore(redis_client)

    store.forget("user_cart:u1")

    pipe.incr.assert_called_once_with("user_cart:u1:version")
    pipe.delete.assert_called_once_with("user_cart:u1")


def test_redis_forget_failure_raises_cache_unavailable(redis_client, pipe):
    pipe.execute.side_effect = redis.ConnectionError("down")
    store = RedisCacheStore(redis_client)

    with pytest.raises(CacheUnavailableError):
        store.forget("user_cart:u1")


def test_build_cache_store():
    assert isinstance(build_cache_store("memory"), MemoryCacheStore)
    with pytest.raises(ValueError):
        build_cache_store("memcached")
