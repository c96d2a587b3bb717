from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0, description="Product identifier")
    quantity: int = Field(..., ge=1, le=99, description="Quantity ordered")


class OrderCreate(BaseModel):
    """Checkout payload. Prices are computed server side; `client_total` is only compared."""
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=30)
    shipping_address: str = Field(..., min_length=5, max_length=200)
    shipping_city: str = Field(..., min_length=2, max_length=100)
    shipping_state: str = Field(..., min_length=2, max_length=100)
    shipping_zip: str = Field(..., min_length=3, max_length=20)
    shipping_country: str = Field("USA", max_length=100)
    items: List[OrderItemIn] = Field(..., min_length=1, max_length=50)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=1000)
    client_total: Optional[float] = Field(None, ge=0)


class OrderUpdate(BaseModel):
    """
    Admin order update. Only these fields may change; anything else in the
    body is rejected.
    """
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    tracking_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _not_empty(self):
        if all(v is None for v in self.model_dump().values()):
            raise ValueError("At least one field must be provided")
        return self


class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=10, max_length=500)
    refund_amount: Optional[float] = Field(None, gt=0)
    restore_inventory: bool = True
