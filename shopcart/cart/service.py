import logging
from typing import Any, Callable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import CartStorageError, CacheUnavailableError
from ..services.catalog import SqlProductCatalog
from .cache import CartCache
from .guest_store import GuestCartStore
from .identity import Identity
from .interfaces import CacheStore, ProductCatalog, SessionStore
from .persistent_store import PersistentCartStore
from .results import CartOutcome, CartResult, MergeReport
from .schemas import CartLine
from .validator import validate_item

logger = logging.getLogger(__name__)


class CartService:
    """
    Single entry point for cart operations.

    Every operation takes the caller's ``Identity`` and dispatches to the
    session-backed guest cart or to the persistent cart fronted by the
    cache. Persistent mutations follow one protocol: invalidate the cache,
    mutate inside a transaction, commit, then repopulate the cache with the
    committed state. A rolled back transaction leaves the cache invalidated.
    """

    def __init__(
        self,
        db: Session,
        session: SessionStore,
        cache_store: CacheStore,
        catalog: ProductCatalog = None,
        max_quantity: int = None,
        session_key: str = None,
        cache_key_prefix: str = None,
        cache_ttl_seconds: int = None,
    ):
        self.db = db
        self.max_quantity = max_quantity if max_quantity is not None else settings.MAX_QUANTITY
        self.catalog = catalog or SqlProductCatalog(db)
        self.guest = GuestCartStore(session, session_key, self.max_quantity)
        self.store = PersistentCartStore(db, self.max_quantity)
        self.cache = CartCache(cache_store, cache_key_prefix, cache_ttl_seconds)

    # --- Public operations ---

    def add_item(self, identity: Identity, product_id: int, quantity: int = 1) -> CartResult:
        product = self.catalog.find_by_id(product_id)
        if product is None:
            return CartResult.failure(CartOutcome.NOT_FOUND, "Product not found", product_id=product_id)

        result = validate_item(product, quantity, self.max_quantity)
        if not result.ok:
            return result

        if not identity.is_authenticated:
            return self.guest.add(product, quantity)

        owner_id = identity.identity_id

        def add():
            cart = self.store.resolve_cart(owner_id)
            return self.store.resolve_line_item(cart, product, quantity)

        result = self._mutate_persistent(owner_id, "update cart", add)
        if result.ok:
            logger.info(f"Added {quantity} x product {product.id} to cart of owner {owner_id}")
        return result

    def get_items(self, identity: Identity) -> List[CartLine]:
        if not identity.is_authenticated:
            return self.guest.list()

        owner_id = identity.identity_id
        return self.cache.get(owner_id, lambda: self.store.list_line_items_for_owner(owner_id))

    def remove_item(self, identity: Identity, product_id: int) -> None:
        if not identity.is_authenticated:
            self.guest.remove(product_id)
            return

        owner_id = identity.identity_id

        def remove():
            cart = self.store.find_cart(owner_id)
            if cart is not None:
                self.store.remove_line_item(cart, product_id)
            return CartResult.success()

        self._mutate_persistent(owner_id, "remove item", remove)

    def clear_cart(self, identity: Identity) -> None:
        if not identity.is_authenticated:
            self.guest.clear()
            return

        owner_id = identity.identity_id

        def clear():
            cart = self.store.find_cart(owner_id)
            if cart is not None:
                self.store.clear_cart(cart)
            return CartResult.success()

        self._mutate_persistent(owner_id, "clear cart", clear)

    def merge_carts_on_login(self, identity: Identity) -> MergeReport:
        """Move the guest cart into the identity's persistent cart.

        Entries whose product is gone or whose accumulated quantity fails
        validation are skipped and reported; only storage faults raise.
        The guest cart is cleared only once the merge has committed.
        """
        if not identity.is_authenticated:
            raise ValueError("Cart merge requires an authenticated identity")

        owner_id = identity.identity_id
        entries = self.guest.entries()
        report = MergeReport()

        if not entries:
            self.guest.clear()
            self.cache.invalidate(owner_id)
            return report

        def merge():
            cart = self.store.resolve_cart(owner_id)
            for key, entry in entries.items():
                self._merge_entry(cart, key, entry, report)
            return CartResult.success()

        self._mutate_persistent(owner_id, "merge cart", merge)
        self.guest.clear()

        logger.info(
            f"Merged guest cart into cart of owner {owner_id}: "
            f"{report.merged_count} merged, {len(report.skipped)} skipped"
        )
        return report

    # --- Internals ---

    def _merge_entry(self, cart, key: str, entry: Any, report: MergeReport) -> None:
        raw_id = entry.get("product_id", key) if isinstance(entry, dict) else key
        try:
            product_id = int(raw_id)
        except (TypeError, ValueError):
            logger.warning(f"Invalid product_id during cart merge: {raw_id!r}")
            report.skip(raw_id, "invalid product id")
            return

        try:
            quantity = int(entry.get("quantity"))
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Invalid quantity during cart merge for product {product_id}")
            report.skip(product_id, CartOutcome.INVALID_QUANTITY.value)
            return

        if quantity < 1:
            logger.warning(f"Non-positive quantity during cart merge for product {product_id}: {quantity}")
            report.skip(product_id, CartOutcome.INVALID_QUANTITY.value)
            return

        product = self.catalog.find_by_id(product_id)
        if product is None:
            logger.warning(f"Product not found during merge: {product_id}")
            report.skip(product_id, CartOutcome.NOT_FOUND.value)
            return

        result = self.store.resolve_line_item(cart, product, quantity)
        if not result.ok:
            logger.warning(f"Validation failed during merge for product {product_id}: {result.message}")
            report.skip(product_id, result.outcome.value)
            return

        report.merged.append(product_id)

    def _mutate_persistent(self, owner_id: str, operation: str, mutate: Callable[[], CartResult]) -> CartResult:
        # Raises CacheUnavailableError before any row is touched
        self.cache.invalidate(owner_id)

        try:
            result = mutate()
            if not result.ok:
                self.db.rollback()
                return result
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database cart error during {operation} for owner {owner_id}: {e}")
            self._invalidate_after_failure(owner_id)
            raise CartStorageError(operation, technical_details=str(e), context={"owner_id": owner_id}) from e
        except Exception:
            self.db.rollback()
            self._invalidate_after_failure(owner_id)
            raise

        try:
            self.cache.refresh(owner_id, self.store.list_line_items_for_owner(owner_id))
        except SQLAlchemyError as e:
            # Committed already; the invalidated entry is repopulated on next read
            self.db.rollback()
            logger.warning(f"Could not repopulate cart cache for owner {owner_id}: {e}")
        return result

    def _invalidate_after_failure(self, owner_id: str) -> None:
        try:
            self.cache.invalidate(owner_id)
        except CacheUnavailableError as e:
            logger.error(f"Cart cache for owner {owner_id} could not be invalidated after rollback: {e.technical_details}")
