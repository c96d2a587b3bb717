from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict, Any

from cricketstore.core.identity import Role
from cricketstore.models.fields import to_int, to_str


@dataclass
class User:
    """
    Domain model for a user.
    The FileBackedDB stores values as strings; these helpers normalize/convert types.
    """
    email: str
    password_hash: str = ""
    role: Role = Role.CUSTOMER
    display_name: Optional[str] = None
    created_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "User":
        if d is None:
            raise ValueError("Cannot construct User from None")
        return cls(
            email=str(d.get("email") or ""),
            password_hash=str(d.get("password_hash") or ""),
            role=Role.parse(d.get("role")),
            display_name=to_str(d.get("display_name")),
            created_at=to_str(d.get("created_at")),
            id=to_int(d.get("id"), None),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Row for the users table. Includes password_hash: strip it in APIs."""
        return {
            "email": self.email,
            "password_hash": self.password_hash,
            "role": self.role.value,
            "display_name": self.display_name,
            "created_at": self.created_at,
        }

    def to_public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role.value,
            "created_at": self.created_at,
        }
