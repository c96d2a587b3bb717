# cricketstore/api/routes/cart.py
from fastapi import APIRouter, Body, Depends

from cricketstore.api.deps import get_db, guard
from cricketstore.api.schemas.cart import MAX_CART_ITEMS, CartItemIn, CartReplace
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import DuplicateRecordError, FileBackedDB
from cricketstore.models.cart import Cart
from cricketstore.models.fields import now_iso
from cricketstore.models.product import Product

router = APIRouter(prefix="/api/cart", tags=["cart"])

cart_guard = guard(RateLimitTier.MODERATE)


def _get_or_create_cart(db: FileBackedDB, user_id: str) -> Cart:
    row = db.get_record("carts", "user_id", user_id)
    if row:
        return Cart.from_dict(row)
    cart = Cart(user_id=user_id, updated_at=now_iso())
    try:
        row = db.create_record("carts", cart.to_dict(), unique=("user_id",))
    except DuplicateRecordError:
        # created by a concurrent request
        row = db.get_record("carts", "user_id", user_id)
    return Cart.from_dict(row)


def _save(db: FileBackedDB, cart: Cart) -> Cart:
    cart.updated_at = now_iso()
    row = db.update_records("carts", {"user_id": cart.user_id}, cart.to_dict())
    if not row:
        raise ApiError(ErrorCode.CART_NOT_FOUND)
    return Cart.from_dict(row)


def _require_product(db: FileBackedDB, product_id: int) -> Product:
    row = db.get_record("products", "id", product_id)
    if not row:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND, f"Product {product_id} not found")
    return Product.from_dict(row)


@router.get("")
@with_error_handler("GET /api/cart")
def get_cart(identity: Identity = Depends(cart_guard), db: FileBackedDB = Depends(get_db)):
    """Return the caller's cart, creating an empty one on first access."""
    return _get_or_create_cart(db, identity.user_id).to_public()


@router.post("")
@with_error_handler("POST /api/cart")
def replace_cart(
    payload: CartReplace = Body(...),
    identity: Identity = Depends(cart_guard),
    db: FileBackedDB = Depends(get_db),
):
    """Replace every item in the cart (used to merge a guest cart after sign-in)."""
    cart = _get_or_create_cart(db, identity.user_id)
    cart.clear()
    for item in payload.items:
        _require_product(db, item.product_id)
        cart.set_quantity(item.product_id, item.quantity)
    return _save(db, cart).to_public()


@router.put("")
@with_error_handler("PUT /api/cart")
def set_cart_item(
    item: CartItemIn = Body(...),
    identity: Identity = Depends(cart_guard),
    db: FileBackedDB = Depends(get_db),
):
    """Set one item's quantity. A quantity of 0 removes it."""
    cart = _get_or_create_cart(db, identity.user_id)
    if item.quantity > 0:
        product = _require_product(db, item.product_id)
        if not product.has_stock_for(item.quantity):
            raise ApiError(
                ErrorCode.PRODUCT_INSUFFICIENT_STOCK,
                details={"product_id": item.product_id, "available": product.stock_quantity},
            )
        if not cart.has_item(item.product_id) and len(cart.items) >= MAX_CART_ITEMS:
            raise ApiError(ErrorCode.CART_ITEM_LIMIT_EXCEEDED)
    cart.set_quantity(item.product_id, item.quantity)
    return _save(db, cart).to_public()


@router.delete("")
@with_error_handler("DELETE /api/cart")
def clear_cart(identity: Identity = Depends(cart_guard), db: FileBackedDB = Depends(get_db)):
    row = db.get_record("carts", "user_id", identity.user_id)
    if not row:
        raise ApiError(ErrorCode.CART_NOT_FOUND)
    cart = Cart.from_dict(row)
    cart.clear()
    _save(db, cart)
    return {"success": True, "message": "Cart cleared"}
