from ..core.config import settings
from .results import CartOutcome, CartResult, ValidationResult


def validate_item(product, quantity: int, max_quantity: int = None) -> ValidationResult:
    """Check a requested quantity against the product's stock and the per-line maximum.

    Checks run in a fixed order (sign, stock, maximum) so the most specific
    problem is reported. Stock is sampled, not reserved.
    """
    if max_quantity is None:
        max_quantity = settings.MAX_QUANTITY

    if quantity < 1:
        return CartResult.failure(
            CartOutcome.INVALID_QUANTITY,
            "Quantity must be a positive number",
            product_id=product.id,
            quantity=quantity,
        )

    if product.stock < quantity:
        return CartResult.failure(
            CartOutcome.OUT_OF_STOCK,
            f"Requested quantity is not available for product: {product.name}",
            product_id=product.id,
            quantity=quantity,
            stock=product.stock,
        )

    if quantity > max_quantity:
        return CartResult.failure(
            CartOutcome.EXCEEDS_MAXIMUM,
            f"Maximum quantity allowed: {max_quantity}",
            product_id=product.id,
            quantity=quantity,
            max_quantity=max_quantity,
        )

    return CartResult.success()
