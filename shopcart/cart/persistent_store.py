import logging
from typing import List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database.models import Cart, CartItem, Product
from .results import CartResult
from .schemas import CartLine
from .validator import validate_item

logger = logging.getLogger(__name__)


class PersistentCartStore:
    """Cart rows for authenticated owners.

    Methods never commit: the caller owns the transaction so that several
    calls plus the cache invalidation form one atomic unit.
    """

    def __init__(self, db: Session, max_quantity: int = None):
        self.db = db
        self.max_quantity = max_quantity if max_quantity is not None else settings.MAX_QUANTITY

    def find_cart(self, owner_id: str) -> Optional[Cart]:
        return self.db.execute(
            select(Cart).where(Cart.owner_id == owner_id)
        ).scalar_one_or_none()

    def resolve_cart(self, owner_id: str) -> Cart:
        """Find or create the owner's cart.

        The insert runs in a savepoint; losing a race against a concurrent
        insert for the same owner trips the unique constraint and we read
        the winner's row instead.
        """
        cart = self.find_cart(owner_id)
        if cart is not None:
            return cart

        try:
            with self.db.begin_nested():
                cart = Cart(owner_id=owner_id)
                self.db.add(cart)
        except IntegrityError:
            logger.info(f"Cart for owner {owner_id} created concurrently, reusing it")
            cart = self.db.execute(
                select(Cart).where(Cart.owner_id == owner_id)
            ).scalar_one()
        return cart

    def _lock_line_item(self, cart: Cart, product_id: int) -> Optional[CartItem]:
        # Exclusive row lock held until the enclosing transaction ends
        return self.db.execute(
            select(CartItem)
            .where(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
            .with_for_update()
        ).scalar_one_or_none()

    def resolve_line_item(self, cart: Cart, product: Product, delta_quantity: int) -> CartResult:
        """Add ``delta_quantity`` to the (cart, product) line under a row lock.

        The accumulated quantity is validated; on success the quantity is set
        and the price snapshot refreshed. Nothing is written on failure.
        """
        item = self._lock_line_item(cart, product.id)

        if item is None:
            result = validate_item(product, delta_quantity, self.max_quantity)
            if not result.ok:
                return result
            try:
                with self.db.begin_nested():
                    self.db.add(CartItem(
                        cart_id=cart.id,
                        product_id=product.id,
                        quantity=delta_quantity,
                        price=product.price,
                    ))
                return result
            except IntegrityError:
                # Another request inserted the line first; fall through to increment it
                logger.info(f"Line for product {product.id} in cart {cart.id} created concurrently, incrementing it")
                item = self._lock_line_item(cart, product.id)
                if item is None:
                    raise

        new_quantity = item.quantity + delta_quantity
        result = validate_item(product, new_quantity, self.max_quantity)
        if not result.ok:
            return result

        item.quantity = new_quantity
        item.price = product.price
        self.db.flush()
        return result

    def remove_line_item(self, cart: Cart, product_id: int) -> int:
        deleted = self.db.execute(
            delete(CartItem).where(CartItem.cart_id == cart.id, CartItem.product_id == product_id)
        ).rowcount
        self.db.expire(cart, ["items"])
        return deleted

    def clear_cart(self, cart: Cart) -> int:
        deleted = self.db.execute(
            delete(CartItem).where(CartItem.cart_id == cart.id)
        ).rowcount
        self.db.expire(cart, ["items"])
        return deleted

    def list_line_items(self, cart: Cart) -> List[CartLine]:
        return self._list_where(CartItem.cart_id == cart.id)

    def list_line_items_for_owner(self, owner_id: str) -> List[CartLine]:
        """Formatted lines for an owner; an owner without a cart has none."""
        return self._list_where(Cart.owner_id == owner_id)

    def _list_where(self, criterion) -> List[CartLine]:
        rows = self.db.execute(
            select(CartItem.product_id, Product.name, CartItem.price, CartItem.quantity)
            .join(Product, Product.id == CartItem.product_id)
            .join(Cart, Cart.id == CartItem.cart_id)
            .where(criterion)
            .order_by(CartItem.id)
        ).all()
        return [
            CartLine(product_id=row.product_id, name=row.name, price=row.price, quantity=row.quantity)
            for row in rows
        ]
