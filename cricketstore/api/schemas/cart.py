from typing import List
from pydantic import BaseModel, Field

MAX_CART_ITEMS = 50
MAX_ITEM_QUANTITY = 99


class CartItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=0, le=MAX_ITEM_QUANTITY, description="0 removes the item")


class CartReplace(BaseModel):
    items: List[CartItemIn] = Field(default_factory=list, max_length=MAX_CART_ITEMS)
