from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database.core import get_db
from ..services.session_store import MappingSessionStore
from .identity import Identity
from .schemas import AddItemRequest, CartResponse, MergeResponse, SkippedEntryResponse
from .service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_identity(request: Request) -> Identity:
    """Identity placed in the session by the authentication layer."""
    return Identity(user_id=request.session.get("user_id"))


def get_cart_service(request: Request, db: Session = Depends(get_db)) -> CartService:
    return CartService(
        db=db,
        session=MappingSessionStore(request.session),
        cache_store=request.app.state.cache_store,
    )


@router.get("/", response_model=CartResponse)
def get_cart(
    identity: Identity = Depends(get_identity),
    cart_service: CartService = Depends(get_cart_service),
):
    """Get the current cart, guest or persistent"""
    return CartResponse(
        items=cart_service.get_items(identity),
        success=True,
        message="Cart retrieved successfully"
    )


@router.post("/items", response_model=CartResponse)
def add_cart_item(
    payload: AddItemRequest,
    identity: Identity = Depends(get_identity),
    cart_service: CartService = Depends(get_cart_service),
):
    """Add a product, accumulating onto an existing line"""
    result = cart_service.add_item(identity, payload.product_id, payload.quantity)
    result.raise_for_outcome()
    return CartResponse(
        items=cart_service.get_items(identity),
        success=True,
        message="Item added to cart"
    )


@router.delete("/items/{product_id}", response_model=CartResponse)
def remove_cart_item(
    product_id: int,
    identity: Identity = Depends(get_identity),
    cart_service: CartService = Depends(get_cart_service),
):
    cart_service.remove_item(identity, product_id)
    return CartResponse(
        items=cart_service.get_items(identity),
        success=True,
        message="Item removed from cart"
    )


@router.delete("/", response_model=CartResponse)
def clear_cart(
    identity: Identity = Depends(get_identity),
    cart_service: CartService = Depends(get_cart_service),
):
    cart_service.clear_cart(identity)
    return CartResponse(items=[], success=True, message="Cart cleared")


@router.post("/merge", response_model=MergeResponse)
def merge_cart(
    identity: Identity = Depends(get_identity),
    cart_service: CartService = Depends(get_cart_service),
):
    """Fold the guest cart into the signed-in user's cart; called right after login"""
    if not identity.is_authenticated:
        return MergeResponse(items=[], merged=[], skipped=[], success=False, message="Login required to merge carts")

    report = cart_service.merge_carts_on_login(identity)
    return MergeResponse(
        items=cart_service.get_items(identity),
        merged=report.merged,
        skipped=[SkippedEntryResponse(product_id=str(s.product_id), reason=s.reason) for s in report.skipped],
        success=True,
        message=f"Merged {report.merged_count} item(s), skipped {len(report.skipped)}"
    )
