from typing import Optional

from sqlalchemy.orm import Session

from ..database.models import Product


class SqlProductCatalog:
    """Read-only product lookups against the shared database."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)
