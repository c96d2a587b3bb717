from typing import Optional

from fastapi import APIRouter, Depends

from cricketstore.api.deps import get_db, guard, optional_identity, parse_id
from cricketstore.api.schemas.wishlist import WishlistCreate
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.product import Product
from cricketstore.models.wishlist import WishlistEntry

router = APIRouter(prefix="/api/wishlist", tags=["wishlist"])


@router.get("")
@with_error_handler("GET /api/wishlist")
def list_wishlist(
    identity: Identity = Depends(guard(RateLimitTier.MODERATE)),
    db: FileBackedDB = Depends(get_db),
):
    """The caller's wishlist joined with product details, newest first."""
    entries = [WishlistEntry.from_dict(r) for r in db.list_records("wishlists", {"user_id": identity.user_id})]
    entries.sort(key=lambda e: (e.added_at or "", e.id or 0), reverse=True)
    data = []
    for entry in entries:
        row = db.get_record("products", "id", entry.product_id)
        item = entry.to_public()
        item["product"] = Product.from_dict(row).to_public() if row else None
        data.append(item)
    return {"success": True, "data": data, "count": len(data)}


@router.post("", status_code=201)
@with_error_handler("POST /api/wishlist")
def add_to_wishlist(
    payload: WishlistCreate,
    identity: Identity = Depends(guard(RateLimitTier.STRICT)),
    db: FileBackedDB = Depends(get_db),
):
    if db.get_record("products", "id", payload.product_id) is None:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND)
    entry = WishlistEntry(
        user_id=identity.user_id,
        product_id=payload.product_id,
        notes=payload.notes,
        added_at=now_iso(),
    )
    try:
        saved = db.create_record("wishlists", entry.to_dict(), unique=("user_id", "product_id"))
    except DuplicateRecordError:
        raise ApiError(ErrorCode.WISHLIST_ALREADY_EXISTS)
    return {"success": True, "message": "Added to wishlist", "data": WishlistEntry.from_dict(saved).to_public()}


@router.delete("/{item_id}")
@with_error_handler("DELETE /api/wishlist/[id]")
def remove_wishlist_item(
    item_id: str,
    identity: Identity = Depends(guard(RateLimitTier.STRICT)),
    db: FileBackedDB = Depends(get_db),
):
    """
    Remove one of the caller's wishlist entries. The delete is filtered by id
    and owner together, so another user's entry is simply not found.
    """
    wid = parse_id(item_id, "wishlist item ID")
    deleted = db.delete_records("wishlists", {"id": wid, "user_id": identity.user_id})
    if not deleted:
        raise ApiError(ErrorCode.WISHLIST_ITEM_NOT_FOUND, "Wishlist item not found or unauthorized")
    return {"success": True, "message": "Removed from wishlist"}


@router.get("/check/{product_id}")
@with_error_handler("GET /api/wishlist/check/[productId]")
def check_wishlist(
    product_id: str,
    identity: Optional[Identity] = Depends(guard(RateLimitTier.MODERATE, optional_identity)),
    db: FileBackedDB = Depends(get_db),
):
    if identity is None:
        return {"success": True, "isInWishlist": False, "wishlistId": None}
    pid = parse_id(product_id, "product ID")
    row = db.find_one("wishlists", {"user_id": identity.user_id, "product_id": pid})
    return {
        "success": True,
        "isInWishlist": row is not None,
        "wishlistId": int(row["id"]) if row else None,
    }
