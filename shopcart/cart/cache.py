import logging
from typing import Callable, List

from ..core.config import settings
from .interfaces import CacheStore
from .schemas import CartLine

logger = logging.getLogger(__name__)


class CartCache:
    """Read-through cache of an owner's formatted line items.

    Entries hold plain JSON-compatible dicts so any backend can store them.
    """

    def __init__(self, store: CacheStore, key_prefix: str = None, ttl_seconds: int = None):
        self.store = store
        self.key_prefix = key_prefix if key_prefix is not None else settings.CART_CACHE_KEY_PREFIX
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cart_cache_ttl_seconds

    def key_for(self, owner_id: str) -> str:
        return f"{self.key_prefix}{owner_id}"

    def get(self, owner_id: str, compute: Callable[[], List[CartLine]]) -> List[CartLine]:
        def _compute():
            return [line.model_dump(mode="json") for line in compute()]

        cached = self.store.remember(self.key_for(owner_id), self.ttl_seconds, _compute)
        return [CartLine.model_validate(entry) for entry in cached]

    def invalidate(self, owner_id: str) -> None:
        self.store.forget(self.key_for(owner_id))
        logger.debug(f"Cart cache invalidated for owner {owner_id}")

    def refresh(self, owner_id: str, lines: List[CartLine]) -> None:
        self.store.put(
            self.key_for(owner_id),
            [line.model_dump(mode="json") for line in lines],
            self.ttl_seconds,
        )
