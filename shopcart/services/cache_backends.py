# shopcart/services/cache_backends.py

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from ..core.config import settings
from ..core.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


class MemoryCacheStore:
    """
    Process-local TTL cache.

    Every key carries a version that ``put`` and ``forget`` bump. A miss in
    ``remember`` computes outside the lock and stores the result only if the
    version is unchanged, so a value computed before a write can never
    replace the value the writer put afterwards.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._versions: Dict[str, int] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.cache_stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "discarded": 0
        }

    def _get_unlocked(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self.cache_stats["misses"] += 1
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            # Remove expired entry
            del self._entries[key]
            self.cache_stats["misses"] += 1
            return None
        self.cache_stats["hits"] += 1
        return value

    def _bump_unlocked(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._get_unlocked(key)

    def put(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._bump_unlocked(key)
            self._entries[key] = (self._clock() + ttl, value)
            self.cache_stats["sets"] += 1

    def forget(self, key: str) -> None:
        with self._lock:
            self._bump_unlocked(key)
            if self._entries.pop(key, None) is not None:
                self.cache_stats["deletes"] += 1

    def remember(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any:
        with self._lock:
            value = self._get_unlocked(key)
            version = self._versions.get(key, 0)
        if value is not None:
            return value

        value = compute()

        with self._lock:
            if self._versions.get(key, 0) == version:
                self._entries[key] = (self._clock() + ttl, value)
                self.cache_stats["sets"] += 1
            else:
                # A write landed while computing; keep the writer's entry
                self.cache_stats["discarded"] += 1
                logger.debug(f"Discarded recomputed value for {key}, written concurrently")
        return value


class RedisCacheStore:
    """
    Redis-backed cache shared by every process instance.

    ``<key>:version`` is incremented in the same MULTI as every write or
    delete of ``<key>``; ``remember`` only stores under WATCH of that
    version, so a recomputation that raced a writer is dropped.
    """

    def __init__(self, client: redis.Redis):
        self.redis_client = client

    @classmethod
    def from_url(cls, redis_url: str = None) -> "RedisCacheStore":
        return cls(redis.Redis.from_url(redis_url or settings.REDIS_URL))

    @staticmethod
    def _version_key(key: str) -> str:
        return f"{key}:version"

    def _serialize_value(self, value: Any) -> bytes:
        return json.dumps(value, default=str).encode()

    def _deserialize_value(self, data: bytes) -> Any:
        return json.loads(data.decode() if isinstance(data, bytes) else data)

    def put(self, key: str, value: Any, ttl: int) -> None:
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.incr(self._version_key(key))
                pipe.setex(key, ttl, self._serialize_value(value))
                pipe.execute()
        except redis.RedisError as e:
            # The key was invalidated beforehand, so a failed write only costs a miss
            logger.error(f"Redis set error for {key}: {e}")

    def forget(self, key: str) -> None:
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.incr(self._version_key(key))
                pipe.delete(key)
                pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis delete error for {key}: {e}")
            raise CacheUnavailableError(technical_details=str(e), context={"cache_key": key}) from e

    def _store_if_unchanged(self, key: str, ttl: int, value: Any, version: Optional[bytes]) -> bool:
        version_key = self._version_key(key)
        try:
            with self.redis_client.pipeline() as pipe:
                pipe.watch(version_key)
                if pipe.get(version_key) != version:
                    logger.debug(f"Discarded recomputed value for {key}, written concurrently")
                    return False
                pipe.multi()
                pipe.setex(key, ttl, self._serialize_value(value))
                pipe.execute()
                return True
        except redis.WatchError:
            logger.debug(f"Discarded recomputed value for {key}, version changed during store")
            return False
        except redis.RedisError as e:
            logger.error(f"Redis set error for {key}: {e}")
            return False

    def remember(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any:
        try:
            data, version = self.redis_client.mget(key, self._version_key(key))
            cached = None if data is None else self._deserialize_value(data)
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis get error for {key}, reading from storage: {e}")
            return compute()

        if cached is not None:
            return cached

        value = compute()
        self._store_if_unchanged(key, ttl, value, version)
        return value


def build_cache_store(backend: str = None):
    backend = (backend or settings.CART_CACHE_BACKEND).lower()
    if backend == "redis":
        logger.info("Using Redis cart cache")
        return RedisCacheStore.from_url()
    if backend != "memory":
        raise ValueError(f"Unknown cart cache backend: {backend}")
    logger.info("Using in-memory cart cache")
    return MemoryCacheStore()
