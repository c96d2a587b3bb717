from typing import Optional
from pydantic import BaseModel, Field, HttpUrl, model_validator

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"
CURRENCY = r"^[A-Z]{3}$"


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    company: str = Field(..., min_length=2, max_length=100)
    category: str = Field(..., min_length=1, max_length=100, description="Category slug")
    image_src: HttpUrl
    image_alt: str = Field(..., min_length=1, max_length=200)
    image_hover_src: Optional[HttpUrl] = None
    image_hover_alt: Optional[str] = Field(None, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    price_regular: float = Field(..., gt=0)
    price_sale: Optional[float] = Field(None, gt=0)
    price_currency: str = Field("USD", pattern=CURRENCY)
    badge_text: Optional[str] = Field(None, max_length=50)
    badge_background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    sku: Optional[str] = Field(None, max_length=100)
    stock_quantity: int = Field(0, ge=0)
    low_stock_threshold: int = Field(10, ge=0)
    track_inventory: bool = True

    @model_validator(mode="after")
    def _sale_below_regular(self):
        if self.price_sale is not None and self.price_sale >= self.price_regular:
            raise ValueError("Sale price must be less than regular price")
        return self


class ProductUpdate(BaseModel):
    """Partial update: only the fields sent are written."""
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    company: Optional[str] = Field(None, min_length=2, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_src: Optional[HttpUrl] = None
    image_alt: Optional[str] = Field(None, min_length=1, max_length=200)
    image_hover_src: Optional[HttpUrl] = None
    image_hover_alt: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    price_regular: Optional[float] = Field(None, gt=0)
    price_sale: Optional[float] = Field(None, gt=0)
    price_currency: Optional[str] = Field(None, pattern=CURRENCY)
    badge_text: Optional[str] = Field(None, max_length=50)
    badge_background_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    sku: Optional[str] = Field(None, max_length=100)
    stock_quantity: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    track_inventory: Optional[bool] = None

    @model_validator(mode="after")
    def _sale_below_regular(self):
        if self.price_sale is not None and self.price_regular is not None and self.price_sale >= self.price_regular:
            raise ValueError("Sale price must be less than regular price")
        return self
