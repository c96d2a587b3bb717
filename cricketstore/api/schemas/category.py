from typing import Optional
from pydantic import BaseModel, Field, HttpUrl

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryCreate(BaseModel):
    slug: str = Field(..., min_length=2, max_length=100, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    long_description: str = Field(..., min_length=20, max_length=2000)
    image: HttpUrl
    image_hover: Optional[HttpUrl] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    long_description: Optional[str] = Field(None, min_length=20, max_length=2000)
    image: Optional[HttpUrl] = None
    image_hover: Optional[HttpUrl] = None
