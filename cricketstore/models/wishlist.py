from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any

from cricketstore.models.fields import to_int, to_str


@dataclass
class WishlistEntry:
    id: Optional[int] = None
    user_id: str = ""
    product_id: int = 0
    notes: Optional[str] = None
    added_at: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WishlistEntry":
        return cls(
            id=to_int(d.get("id"), None),
            user_id=str(d.get("user_id") or ""),
            product_id=to_int(d.get("product_id")),
            notes=to_str(d.get("notes")),
            added_at=to_str(d.get("added_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "product_id": self.product_id,
            "notes": self.notes,
            "added_at": self.added_at,
        }

    def to_public(self) -> Dict[str, Any]:
        out = self.to_dict()
        out["id"] = self.id
        return out
