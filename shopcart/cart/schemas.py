from decimal import Decimal
from typing import List
from pydantic import BaseModel, ConfigDict


class CartLine(BaseModel):
    """One formatted line item, identical for guest and persistent carts."""
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    name: str
    price: Decimal
    quantity: int


class AddItemRequest(BaseModel):
    product_id: int
    quantity: int = 1


class SkippedEntryResponse(BaseModel):
    product_id: str
    reason: str


class CartResponse(BaseModel):
    items: List[CartLine]
    success: bool
    message: str


class MergeResponse(BaseModel):
    items: List[CartLine]
    merged: List[int]
    skipped: List[SkippedEntryResponse]
    success: bool
    message: str
