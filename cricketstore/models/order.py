from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
import json

from cricketstore.models.fields import to_float, to_int, to_list, to_str

CANCELLABLE_STATUSES = ("pending", "processing")


@dataclass
class OrderItem:
    product_id: int
    product_name: str = ""
    product_image: Optional[str] = None
    quantity: int = 1
    price: float = 0.0
    total: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OrderItem":
        quantity = to_int(d.get("quantity"), 1)
        price = to_float(d.get("price"))
        return cls(
            product_id=to_int(d.get("product_id")),
            product_name=str(d.get("product_name") or ""),
            product_image=to_str(d.get("product_image")),
            quantity=quantity,
            price=price,
            total=to_float(d.get("total"), round(price * quantity, 2)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": int(self.product_id),
            "product_name": self.product_name,
            "product_image": self.product_image,
            "quantity": int(self.quantity),
            "price": float(self.price),
            "total": float(self.total),
        }


@dataclass
class Order:
    """
    Order record. Orders belong to a customer by email, not by user id.
    `items` is stored as a JSON string in the orders table.
    """
    id: Optional[int] = None
    order_number: str = ""
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: Optional[str] = None
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_state: str = ""
    shipping_zip: str = ""
    shipping_country: str = "USA"
    items: List[OrderItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    shipping_cost: float = 0.0
    total: float = 0.0
    currency: str = "USD"
    status: str = "pending"
    payment_status: str = "unpaid"
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    shipped_at: Optional[str] = None
    delivered_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Order":
        if d is None:
            raise ValueError("Cannot construct Order from None")
        items = [OrderItem.from_dict(it) for it in to_list(d.get("items")) if isinstance(it, dict)]
        return cls(
            id=to_int(d.get("id"), None),
            order_number=str(d.get("order_number") or ""),
            customer_name=str(d.get("customer_name") or ""),
            customer_email=str(d.get("customer_email") or ""),
            customer_phone=to_str(d.get("customer_phone")),
            shipping_address=str(d.get("shipping_address") or ""),
            shipping_city=str(d.get("shipping_city") or ""),
            shipping_state=str(d.get("shipping_state") or ""),
            shipping_zip=str(d.get("shipping_zip") or ""),
            shipping_country=str(d.get("shipping_country") or "USA"),
            items=items,
            subtotal=to_float(d.get("subtotal")),
            tax=to_float(d.get("tax")),
            shipping_cost=to_float(d.get("shipping_cost")),
            total=to_float(d.get("total")),
            currency=str(d.get("currency") or "USD"),
            status=str(d.get("status") or "pending"),
            payment_status=str(d.get("payment_status") or "unpaid"),
            payment_method=to_str(d.get("payment_method")),
            notes=to_str(d.get("notes")),
            tracking_number=to_str(d.get("tracking_number")),
            created_at=to_str(d.get("created_at")),
            updated_at=to_str(d.get("updated_at")),
            shipped_at=to_str(d.get("shipped_at")),
            delivered_at=to_str(d.get("delivered_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Row for the orders table (items serialised to JSON, no id)."""
        out = self.to_public()
        out.pop("id")
        out["items"] = json.dumps(out["items"], ensure_ascii=False)
        return out

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address,
            "shipping_city": self.shipping_city,
            "shipping_state": self.shipping_state,
            "shipping_zip": self.shipping_zip,
            "shipping_country": self.shipping_country,
            "items": [it.to_dict() for it in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "total": self.total,
            "currency": self.currency,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "tracking_number": self.tracking_number,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "shipped_at": self.shipped_at,
            "delivered_at": self.delivered_at,
        }

    # business helpers
    def belongs_to(self, email: str) -> bool:
        return bool(email) and self.customer_email.strip().lower() == email.strip().lower()

    def can_be_cancelled(self) -> bool:
        return self.status in CANCELLABLE_STATUSES
