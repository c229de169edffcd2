from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from ..core.exceptions import ErrorCode, ProductNotFoundError, CartValidationError


class CartOutcome(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID_QUANTITY = "invalid_quantity"
    OUT_OF_STOCK = "out_of_stock"
    EXCEEDS_MAXIMUM = "exceeds_maximum"


_ERROR_CODES = {
    CartOutcome.INVALID_QUANTITY: ErrorCode.INVALID_QUANTITY,
    CartOutcome.OUT_OF_STOCK: ErrorCode.OUT_OF_STOCK,
    CartOutcome.EXCEEDS_MAXIMUM: ErrorCode.EXCEEDS_MAXIMUM,
}


@dataclass(frozen=True)
class CartResult:
    """Outcome of a validation or a cart operation.

    Failures are values, not exceptions: callers branch on ``outcome`` or
    call ``raise_for_outcome()`` when an exception suits them better.
    """
    outcome: CartOutcome = CartOutcome.OK
    message: str = ""
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.outcome is CartOutcome.OK

    @classmethod
    def success(cls) -> "CartResult":
        return cls()

    @classmethod
    def failure(cls, outcome: CartOutcome, message: str, **context: Any) -> "CartResult":
        return cls(outcome=outcome, message=message, context=context)

    def raise_for_outcome(self) -> None:
        if self.ok:
            return
        if self.outcome is CartOutcome.NOT_FOUND:
            raise ProductNotFoundError(self.context.get("product_id"))
        raise CartValidationError(_ERROR_CODES[self.outcome], self.message, self.context)


# Validation and operation results share one shape.
ValidationResult = CartResult


@dataclass
class SkippedEntry:
    product_id: Any
    reason: str


@dataclass
class MergeReport:
    """What a login merge did with each guest entry."""
    merged: List[int] = field(default_factory=list)
    skipped: List[SkippedEntry] = field(default_factory=list)

    @property
    def merged_count(self) -> int:
        return len(self.merged)

    def skip(self, product_id: Any, reason: str) -> None:
        self.skipped.append(SkippedEntry(product_id=product_id, reason=reason))
