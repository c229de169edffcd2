from .identity import Identity
from .results import CartOutcome, CartResult, MergeReport
from .schemas import CartLine
from .service import CartService
from .controller import router

__all__ = ["router", "CartService", "Identity", "CartOutcome", "CartResult", "MergeReport", "CartLine"]
