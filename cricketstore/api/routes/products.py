import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from cricketstore.api.deps import admin_identity, get_db, guard, optional_identity, parse_id
from cricketstore.api.schemas.product import ProductCreate, ProductUpdate
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.product import Product

router = APIRouter(prefix="/api/products", tags=["products"])

public_read = guard(RateLimitTier.RELAXED, optional_identity)
admin_write = guard(RateLimitTier.STRICT, admin_identity)


def _relevance(product: Product, term: str) -> int:
    # lower is better
    name = product.name.lower()
    if name == term:
        return 1
    if term in name:
        return 2
    if term in (product.sku or "").lower():
        return 3
    if term in product.company.lower():
        return 4
    return 5


def _matches(product: Product, term: str) -> bool:
    haystack = " ".join([product.name, product.company, product.description, product.category, product.sku or ""])
    return term in haystack.lower()


@router.get("")
@with_error_handler("GET /api/products")
def list_products(
    category: Optional[str] = Query(None, max_length=100),
    identity: Optional[Identity] = Depends(public_read),
    db: FileBackedDB = Depends(get_db),
):
    where = {"category": category} if category else None
    products = [Product.from_dict(r) for r in db.list_records("products", where)]
    products.sort(key=lambda p: (p.created_at or "", p.id or 0), reverse=True)
    return {"products": [p.to_public() for p in products], "count": len(products)}


@router.get("/search")
@with_error_handler("GET /api/products/search")
def search_products(
    q: str = Query(""),
    category: Optional[str] = Query(None, max_length=100),
    page: int = Query(1),
    limit: int = Query(20),
    identity: Optional[Identity] = Depends(public_read),
    db: FileBackedDB = Depends(get_db),
):
    """
    Search name, company, description, category and sku. Results are ordered
    by relevance: exact name, name, sku, company, anything else.
    """
    term = q.strip().lower()
    if len(term) < 2:
        raise ApiError(ErrorCode.VALIDATION_FAILED, "Search query must be at least 2 characters")
    if page < 1 or not 1 <= limit <= 100:
        raise ApiError(ErrorCode.INVALID_QUERY_PARAMS, "page must be >= 1 and limit between 1 and 100")

    where = {"category": category} if category else None
    hits: List[Product] = [p for p in (Product.from_dict(r) for r in db.list_records("products", where)) if _matches(p, term)]
    hits.sort(key=lambda p: -(p.id or 0))
    hits.sort(key=lambda p: _relevance(p, term))

    total = len(hits)
    start = (page - 1) * limit
    results = [p.to_public() for p in hits[start:start + limit]]
    total_pages = math.ceil(total / limit) if total else 0
    return {
        "success": True,
        "data": {
            "products": results,
            "pagination": {
                "page": page,
                "limit": limit,
                "total_count": total,
                "total_pages": total_pages,
                "has_more": page < total_pages,
            },
            "query": q.strip(),
        },
    }


@router.get("/{product_id}")
@with_error_handler("GET /api/products/[id]")
def get_product(
    product_id: str,
    identity: Optional[Identity] = Depends(public_read),
    db: FileBackedDB = Depends(get_db),
):
    row = db.get_record("products", "id", parse_id(product_id, "product ID"))
    if not row:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND)
    return Product.from_dict(row).to_public()


@router.post("", status_code=201)
@with_error_handler("POST /api/products")
def create_product(
    payload: ProductCreate = Body(...),
    identity: Identity = Depends(admin_write),
    db: FileBackedDB = Depends(get_db),
):
    if db.get_record("categories", "slug", payload.category) is None:
        raise ApiError(ErrorCode.CATEGORY_NOT_FOUND)
    data: Dict[str, Any] = payload.model_dump(mode="json")
    now = now_iso()
    data.update({"created_at": now, "updated_at": now})
    unique = ("sku",) if payload.sku else None
    try:
        saved = db.create_record("products", data, unique=unique)
    except DuplicateRecordError:
        raise ApiError(ErrorCode.VALIDATION_DUPLICATE, "A product with this SKU already exists")
    return Product.from_dict(saved).to_public()


@router.put("/{product_id}")
@with_error_handler("PUT /api/products/[id]")
def update_product(
    product_id: str,
    payload: ProductUpdate = Body(...),
    identity: Identity = Depends(admin_write),
    db: FileBackedDB = Depends(get_db),
):
    pid = parse_id(product_id, "product ID")
    updates: Dict[str, Any] = payload.model_dump(exclude_unset=True, mode="json")
    if "price_sale" in updates and "price_regular" not in updates and updates["price_sale"] is not None:
        current = db.get_record("products", "id", pid)
        if current and updates["price_sale"] >= Product.from_dict(current).price_regular:
            raise ApiError(ErrorCode.VALIDATION_FAILED, "Sale price must be less than regular price")
    if updates.get("category") and db.get_record("categories", "slug", updates["category"]) is None:
        raise ApiError(ErrorCode.CATEGORY_NOT_FOUND)
    updates["updated_at"] = now_iso()
    updated = db.update_records("products", {"id": pid}, updates)
    if not updated:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND)
    return Product.from_dict(updated).to_public()


@router.delete("/{product_id}")
@with_error_handler("DELETE /api/products/[id]")
def delete_product(
    product_id: str,
    identity: Identity = Depends(admin_write),
    db: FileBackedDB = Depends(get_db),
):
    deleted = db.delete_records("products", {"id": parse_id(product_id, "product ID")})
    if not deleted:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND)
    return {"success": True, "message": "Product deleted successfully"}
