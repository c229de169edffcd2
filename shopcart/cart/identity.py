from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Identity:
    """Who the cart belongs to for the current request.

    ``user_id`` is set by the authentication layer; ``None`` means guest.
    """
    user_id: Optional[Any] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def identity_id(self) -> str:
        if self.user_id is None:
            raise ValueError("Guest identities have no owner id")
        return str(self.user_id)

    @classmethod
    def guest(cls) -> "Identity":
        return cls()
