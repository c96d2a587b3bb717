# --- Pydantic schemas for wishlist endpoints ---
from typing import Optional
from pydantic import BaseModel, Field


class WishlistCreate(BaseModel):
    product_id: int = Field(..., gt=0, description="ID of the product to add to the wishlist")
    notes: Optional[str] = Field(None, max_length=500)
