from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
import json

from cricketstore.models.fields import to_int, to_list, to_str


@dataclass
class CartItem:
    product_id: int
    quantity: int = 1

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartItem":
        return cls(product_id=to_int(d.get("product_id")), quantity=to_int(d.get("quantity"), 1))

    def to_dict(self) -> Dict[str, Any]:
        return {"product_id": int(self.product_id), "quantity": int(self.quantity)}


@dataclass
class Cart:
    """
    One cart per user, saved as a single row with 'items' serialized as JSON
    (list of CartItem dicts).
    """
    id: Optional[int] = None
    user_id: Optional[str] = None
    items: List[CartItem] = field(default_factory=list)
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Cart":
        if d is None:
            raise ValueError("Cannot construct Cart from None")
        items = [CartItem.from_dict(it) for it in to_list(d.get("items")) if isinstance(it, dict)]
        return cls(
            id=to_int(d.get("id"), None),
            user_id=to_str(d.get("user_id")),
            items=items,
            updated_at=to_str(d.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id or "",
            "items": json.dumps([it.to_dict() for it in self.items], ensure_ascii=False),
            "updated_at": self.updated_at or "",
        }

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "items": [it.to_dict() for it in self.items],
            "item_count": self.count_items(),
            "updated_at": self.updated_at,
        }

    # business helpers
    def set_quantity(self, product_id: int, quantity: int) -> None:
        """Set an item's quantity; zero or less removes it."""
        for idx, it in enumerate(self.items):
            if it.product_id == product_id:
                if quantity <= 0:
                    self.items.pop(idx)
                else:
                    it.quantity = int(quantity)
                return
        if quantity > 0:
            self.items.append(CartItem(product_id=product_id, quantity=int(quantity)))

    def has_item(self, product_id: int) -> bool:
        return any(it.product_id == product_id for it in self.items)

    def clear(self) -> None:
        self.items = []

    def count_items(self) -> int:
        return int(sum(it.quantity for it in self.items))
