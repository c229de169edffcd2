"""Collaborator contracts consumed by the cart core."""

from typing import Any, Callable, Optional, Protocol


class SessionStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def put(self, key: str, value: Any) -> None: ...

    def forget(self, key: str) -> None: ...


class CacheStore(Protocol):
    def remember(self, key: str, ttl: int, compute: Callable[[], Any]) -> Any: ...

    def put(self, key: str, value: Any, ttl: int) -> None: ...

    def forget(self, key: str) -> None: ...


class ProductCatalog(Protocol):
    def find_by_id(self, product_id: int) -> Optional[Any]: ...
