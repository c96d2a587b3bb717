import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from cricketstore.api.deps import admin_identity, get_db, guard, optional_identity
from cricketstore.api.schemas.category import SLUG_PATTERN, CategoryCreate, CategoryUpdate
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.product import Category

router = APIRouter(prefix="/api/categories", tags=["categories"])

_slug_re = re.compile(SLUG_PATTERN)


def _valid_slug(slug: str) -> str:
    if not _slug_re.match(slug or ""):
        raise ApiError(ErrorCode.VALIDATION_FAILED, "Invalid category slug")
    return slug


@router.get("")
@with_error_handler("GET /api/categories")
def list_categories(
    identity: Optional[Identity] = Depends(guard(RateLimitTier.RELAXED, optional_identity)),
    db: FileBackedDB = Depends(get_db),
):
    categories = sorted((Category.from_dict(r) for r in db.list_records("categories")), key=lambda c: c.name.lower())
    return {"categories": [c.to_public() for c in categories], "count": len(categories)}


@router.get("/{slug}")
@with_error_handler("GET /api/categories/[slug]")
def get_category(
    slug: str,
    identity: Optional[Identity] = Depends(guard(RateLimitTier.RELAXED, optional_identity)),
    db: FileBackedDB = Depends(get_db),
):
    row = db.get_record("categories", "slug", _valid_slug(slug))
    if not row:
        raise ApiError(ErrorCode.CATEGORY_NOT_FOUND)
    category = Category.from_dict(row).to_public()
    category["product_count"] = db.count("products", {"category": slug})
    return category


@router.post("", status_code=201)
@with_error_handler("POST /api/categories")
def create_category(
    payload: CategoryCreate = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    data: Dict[str, Any] = payload.model_dump(mode="json")
    now = now_iso()
    data.update({"created_at": now, "updated_at": now})
    try:
        saved = db.create_record("categories", data, unique=("slug",))
    except DuplicateRecordError:
        raise ApiError(ErrorCode.VALIDATION_DUPLICATE, "A category with this slug already exists")
    return Category.from_dict(saved).to_public()


@router.put("/{slug}")
@with_error_handler("PUT /api/categories/[slug]")
def update_category(
    slug: str,
    payload: CategoryUpdate = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    updates: Dict[str, Any] = payload.model_dump(exclude_unset=True, mode="json")
    updates["updated_at"] = now_iso()
    updated = db.update_records("categories", {"slug": _valid_slug(slug)}, updates)
    if not updated:
        raise ApiError(ErrorCode.CATEGORY_NOT_FOUND)
    return Category.from_dict(updated).to_public()


@router.delete("/{slug}")
@with_error_handler("DELETE /api/categories/[slug]")
def delete_category(
    slug: str,
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    deleted = db.delete_records("categories", {"slug": _valid_slug(slug)})
    if not deleted:
        raise ApiError(ErrorCode.CATEGORY_NOT_FOUND)
    return {"success": True, "message": "Category deleted successfully"}
