from pydantic import BaseModel, EmailStr, Field
from typing import Optional

from cricketstore.core.identity import Role


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, max_length=100)


class UserOut(BaseModel):
    id: int
    email: EmailStr
    display_name: Optional[str] = None
    role: Role = Role.CUSTOMER
    created_at: Optional[str] = None


class RoleUpdate(BaseModel):
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
