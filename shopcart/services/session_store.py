from typing import Any, MutableMapping


class MappingSessionStore:
    """Session store over any mutable mapping, e.g. Starlette's ``request.session``.

    Values are copied on write so the session layer sees a changed object
    and re-serializes the cookie.
    """

    def __init__(self, mapping: MutableMapping[str, Any]):
        self.mapping = mapping

    def get(self, key: str, default: Any = None) -> Any:
        return self.mapping.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self.mapping[key] = dict(value) if isinstance(value, dict) else value

    def forget(self, key: str) -> None:
        self.mapping.pop(key, None)
