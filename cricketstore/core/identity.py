from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request

from cricketstore.config import Settings
from cricketstore.core.security import decode_access_token
from cricketstore.database import FileBackedDB


class Role(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"

    @classmethod
    def parse(cls, raw: Any) -> "Role":
        # anything that is not explicitly "admin" is a customer
        if isinstance(raw, Role):
            return raw
        if str(raw or "").strip().lower() == cls.ADMIN.value:
            return cls.ADMIN
        return cls.CUSTOMER


@dataclass(frozen=True)
class Identity:
    """An authenticated caller. The role is resolved once, here."""

    user_id: str
    email: str
    role: Role
    user: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


class IdentityProvider:
    """
    Resolves the caller of a request from a bearer token (Authorization header)
    or the 'access_token' cookie set by the form login.
    """

    def __init__(self, db: FileBackedDB, settings: Settings):
        self.db = db
        self.settings = settings

    def get_current_user(self, request: Request) -> Optional[Identity]:
        token = _bearer_token(request) or request.cookies.get("access_token")
        user_id = decode_access_token(token or "", self.settings.JWT_SECRET, self.settings.JWT_ALGORITHM)
        if not user_id:
            return None
        row = self.db.get_record("users", "id", user_id)
        if not row:
            return None
        user = {k: v for k, v in row.items() if k != "password_hash"}
        return Identity(
            user_id=str(row.get("id")),
            email=str(row.get("email") or ""),
            role=Role.parse(row.get("role")),
            user=user,
        )
