import logging
from typing import List

from ..core.config import settings
from .interfaces import SessionStore
from .results import CartResult
from .schemas import CartLine
from .validator import validate_item

logger = logging.getLogger(__name__)


class GuestCartStore:
    """Cart held in the visitor's session as one mapping of product id -> line item.

    Keys are stringified product ids so the mapping survives JSON session
    serialization.
    """

    def __init__(self, session: SessionStore, session_key: str = None, max_quantity: int = None):
        self.session = session
        self.session_key = session_key or settings.GUEST_CART_SESSION_KEY
        self.max_quantity = max_quantity if max_quantity is not None else settings.MAX_QUANTITY

    def _load(self) -> dict:
        return dict(self.session.get(self.session_key, {}) or {})

    def entries(self) -> dict:
        """Raw session mapping, used by the login merge."""
        return self._load()

    def add(self, product, quantity: int) -> CartResult:
        cart = self._load()
        key = str(product.id)

        if key in cart:
            new_quantity = int(cart[key]["quantity"]) + quantity
            result = validate_item(product, new_quantity, self.max_quantity)
            if not result.ok:
                return result
            # Price stays as captured when the entry was first added
            cart[key] = {**cart[key], "quantity": new_quantity}
        else:
            result = validate_item(product, quantity, self.max_quantity)
            if not result.ok:
                return result
            cart[key] = self.format_entry(product, quantity)

        self.session.put(self.session_key, cart)
        return CartResult.success()

    def remove(self, product_id: int) -> None:
        cart = self._load()
        if str(product_id) in cart:
            del cart[str(product_id)]
            self.session.put(self.session_key, cart)

    def clear(self) -> None:
        self.session.forget(self.session_key)

    def list(self) -> List[CartLine]:
        return [CartLine.model_validate(entry) for entry in self._load().values()]

    @staticmethod
    def format_entry(product, quantity: int) -> dict:
        return {
            "product_id": product.id,
            "name": product.name,
            "price": str(product.price),
            "quantity": quantity,
        }
