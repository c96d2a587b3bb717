"""
Server-side order pricing and inventory reservation.

Client-sent prices are never trusted: every line is priced from the catalog
(sale price when set, regular price otherwise) and totals are rounded to cents.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from cricketstore.core.errors import ApiError, ErrorCode
from cricketstore.database import FileBackedDB
from cricketstore.models.order import OrderItem
from cricketstore.models.product import Product

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = 0.01
# compare-and-set attempts per product when adjusting stock
STOCK_UPDATE_ATTEMPTS = 3


@dataclass
class OrderCalculation:
    items: List[OrderItem] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    shipping_cost: float = 0.0
    total: float = 0.0
    currency: str = "USD"


def _money(value: float) -> float:
    return round(float(value) + 1e-9, 2)


def _load_product(db: FileBackedDB, product_id: int) -> Product:
    row = db.get_record("products", "id", product_id)
    if not row:
        raise ApiError(ErrorCode.PRODUCT_NOT_FOUND, f"Product {product_id} not found")
    return Product.from_dict(row)


def calculate_order_prices(
    db: FileBackedDB,
    items: Iterable[Tuple[int, int]],
    tax_rate: float = 0.08,
    shipping_cost: float = 0.0,
    currency: str = "USD",
) -> OrderCalculation:
    """Price `(product_id, quantity)` pairs from the catalog, checking tracked stock."""
    calc = OrderCalculation(shipping_cost=_money(shipping_cost), currency=currency)
    for product_id, quantity in items:
        product = _load_product(db, product_id)
        if not product.has_stock_for(quantity):
            raise ApiError(
                ErrorCode.PRODUCT_INSUFFICIENT_STOCK,
                f"Insufficient stock for {product.name}. Only {product.stock_quantity} available",
                details={"product_id": product_id, "available": product.stock_quantity, "requested": quantity},
            )
        price = product.effective_price
        calc.items.append(
            OrderItem(
                product_id=product_id,
                product_name=product.name,
                product_image=product.image_src or None,
                quantity=quantity,
                price=_money(price),
                total=_money(price * quantity),
            )
        )
    calc.subtotal = _money(sum(it.total for it in calc.items))
    calc.tax = _money(calc.subtotal * tax_rate)
    calc.total = _money(calc.subtotal + calc.tax + calc.shipping_cost)
    return calc


def prices_match(client_total: float, server_total: float, tolerance: float = PRICE_TOLERANCE) -> bool:
    return abs(float(client_total) - float(server_total)) <= tolerance


def _adjust_stock(db: FileBackedDB, product_id: int, delta: int) -> bool:
    """
    Add `delta` to a tracked product's stock. The write is conditioned on the
    stock value that was read, so a concurrent change forces a re-read.
    Returns False when a decrement would go below zero.
    """
    for _ in range(STOCK_UPDATE_ATTEMPTS):
        row = db.get_record("products", "id", product_id)
        if not row:
            return False
        product = Product.from_dict(row)
        if not product.track_inventory:
            return True
        new_stock = product.stock_quantity + delta
        if new_stock < 0:
            return False
        updated = db.update_records(
            "products",
            {"id": product_id, "stock_quantity": row.get("stock_quantity", "")},
            {"stock_quantity": new_stock},
        )
        if updated:
            return True
    return False


def reserve_inventory(db: FileBackedDB, items: Iterable[OrderItem]) -> List[Tuple[int, int]]:
    """
    Decrement stock for each line. On failure every earlier reservation is
    released and PRODUCT_INSUFFICIENT_STOCK is raised.
    """
    reserved: List[Tuple[int, int]] = []
    for it in items:
        if not _adjust_stock(db, it.product_id, -it.quantity):
            release_inventory(db, reserved)
            raise ApiError(
                ErrorCode.PRODUCT_INSUFFICIENT_STOCK,
                f"Insufficient stock for {it.product_name or it.product_id}",
                details={"product_id": it.product_id, "requested": it.quantity},
            )
        reserved.append((it.product_id, it.quantity))
    return reserved


def release_inventory(db: FileBackedDB, reserved: Iterable[Tuple[int, int]]) -> None:
    for product_id, quantity in reserved:
        if not _adjust_stock(db, product_id, quantity):
            logger.error("Failed to release %s units of product %s", quantity, product_id)


def restore_inventory(db: FileBackedDB, items: Iterable[OrderItem]) -> Dict[int, int]:
    """Put ordered quantities back in stock (cancel/refund). Returns restored units per product."""
    restored: Dict[int, int] = {}
    for it in items:
        if _adjust_stock(db, it.product_id, it.quantity):
            restored[it.product_id] = restored.get(it.product_id, 0) + it.quantity
        else:
            logger.warning("Could not restore stock for product %s (order line of %s)", it.product_id, it.quantity)
    return restored
