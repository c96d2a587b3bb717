from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any

from cricketstore.models.fields import to_bool, to_float, to_int, to_str


@dataclass
class Product:
    """
    Catalog product. Rows in the products table are flat; `to_public` nests
    image, price and badge the way the storefront consumes them.
    """
    id: Optional[int] = None
    name: str = ""
    company: str = ""
    category: str = ""  # category slug
    image_src: str = ""
    image_alt: str = ""
    image_hover_src: Optional[str] = None
    image_hover_alt: Optional[str] = None
    description: str = ""
    price_regular: float = 0.0
    price_sale: Optional[float] = None
    price_currency: str = "USD"
    badge_text: Optional[str] = None
    badge_background_color: Optional[str] = None
    sku: Optional[str] = None
    stock_quantity: int = 0
    low_stock_threshold: int = 10
    track_inventory: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Product":
        if d is None:
            raise ValueError("Cannot construct Product from None")
        return cls(
            id=to_int(d.get("id"), None),
            name=str(d.get("name") or ""),
            company=str(d.get("company") or ""),
            category=str(d.get("category") or ""),
            image_src=str(d.get("image_src") or ""),
            image_alt=str(d.get("image_alt") or ""),
            image_hover_src=to_str(d.get("image_hover_src")),
            image_hover_alt=to_str(d.get("image_hover_alt")),
            description=str(d.get("description") or ""),
            price_regular=to_float(d.get("price_regular")),
            price_sale=to_float(d.get("price_sale"), None),
            price_currency=str(d.get("price_currency") or "USD"),
            badge_text=to_str(d.get("badge_text")),
            badge_background_color=to_str(d.get("badge_background_color")),
            sku=to_str(d.get("sku")),
            stock_quantity=to_int(d.get("stock_quantity")),
            low_stock_threshold=to_int(d.get("low_stock_threshold"), 10),
            track_inventory=to_bool(d.get("track_inventory"), True),
            created_at=to_str(d.get("created_at")),
            updated_at=to_str(d.get("updated_at")),
        )

    @property
    def effective_price(self) -> float:
        # the sale price wins whenever one is set
        if self.price_sale is not None and self.price_sale > 0:
            return float(self.price_sale)
        return float(self.price_regular)

    def has_stock_for(self, quantity: int) -> bool:
        return not self.track_inventory or self.stock_quantity >= quantity

    def to_public(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "category": self.category,
            "image": {"src": self.image_src, "alt": self.image_alt},
            "description": self.description,
            "price": {"regular": self.price_regular, "sale": self.price_sale, "currency": self.price_currency},
            "sku": self.sku,
            "stock_quantity": self.stock_quantity,
            "in_stock": self.has_stock_for(1),
            "low_stock": self.track_inventory and self.stock_quantity <= self.low_stock_threshold,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.image_hover_src:
            out["image_hover"] = {"src": self.image_hover_src, "alt": self.image_hover_alt or ""}
        if self.badge_text:
            out["badge"] = {"text": self.badge_text, "background_color": self.badge_background_color}
        return out


@dataclass
class Category:
    id: Optional[int] = None
    slug: str = ""
    name: str = ""
    description: str = ""
    long_description: str = ""
    image: str = ""
    image_hover: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Category":
        if d is None:
            raise ValueError("Cannot construct Category from None")
        return cls(
            id=to_int(d.get("id"), None),
            slug=str(d.get("slug") or ""),
            name=str(d.get("name") or ""),
            description=str(d.get("description") or ""),
            long_description=str(d.get("long_description") or ""),
            image=str(d.get("image") or ""),
            image_hover=to_str(d.get("image_hover")),
            created_at=to_str(d.get("created_at")),
            updated_at=to_str(d.get("updated_at")),
        )

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "long_description": self.long_description,
            "image": self.image,
            "image_hover": self.image_hover,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
