# shopcart/core/exceptions.py

from enum import Enum
from typing import Optional, Dict, Any

class ErrorCode(Enum):
    """Standardized error codes for cart operations."""

    # Catalog errors
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"

    # Validation errors
    INVALID_QUANTITY = "INVALID_QUANTITY"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    EXCEEDS_MAXIMUM = "EXCEEDS_MAXIMUM"

    # System errors
    STORAGE_FAILURE = "STORAGE_FAILURE"
    CACHE_UNAVAILABLE = "CACHE_UNAVAILABLE"


class ShopCartError(Exception):
    """Base exception for all cart errors surfaced to callers."""

    def __init__(
        self,
        code: ErrorCode,
        user_message: str,
        technical_details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggested_action: Optional[str] = None
    ):
        self.code = code
        self.user_message = user_message
        self.technical_details = technical_details
        self.context = context or {}
        self.suggested_action = suggested_action
        super().__init__(self.user_message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to API response format."""
        response = {
            "error": {
                "code": self.code.value,
                "message": self.user_message,
                "context": self.context
            }
        }

        if self.suggested_action:
            response["error"]["suggested_action"] = self.suggested_action

        return response


class ProductNotFoundError(ShopCartError):
    def __init__(self, product_id: Any):
        super().__init__(
            code=ErrorCode.PRODUCT_NOT_FOUND,
            user_message="Product not found",
            context={"product_id": product_id},
            suggested_action="Refresh the catalog and pick an available product"
        )


class CartValidationError(ShopCartError):
    """Raised when a requested quantity breaks a cart rule."""

    def __init__(self, code: ErrorCode, user_message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(code=code, user_message=user_message, context=context)


class CartStorageError(ShopCartError):
    """The relational store failed during a mutating operation; the transaction was rolled back."""

    def __init__(self, operation: str, technical_details: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__(
            code=ErrorCode.STORAGE_FAILURE,
            user_message=f"Failed to {operation}",
            technical_details=technical_details,
            context=context,
            suggested_action="Please try again"
        )


class CacheUnavailableError(ShopCartError):
    def __init__(self, technical_details: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            code=ErrorCode.CACHE_UNAVAILABLE,
            user_message="Cart cache is unavailable",
            technical_details=technical_details,
            context=context,
            suggested_action="Please try again shortly"
        )
