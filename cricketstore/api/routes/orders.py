# cricketstore/api/routes/orders.py
import logging
import secrets
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from cricketstore.api.deps import admin_identity, get_app_settings, get_db, guard, parse_id
from cricketstore.api.schemas.order import OrderCreate, OrderStatus, OrderUpdate, PaymentStatus, RefundRequest
from cricketstore.config import Settings
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import FileBackedDB
from cricketstore.models.fields import now_iso
from cricketstore.models.order import Order
from cricketstore.services.pricing import (
    calculate_order_prices,
    prices_match,
    release_inventory,
    reserve_inventory,
    restore_inventory,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _newest_first(rows):
    return sorted(rows, key=lambda r: (r.get("created_at") or "", int(r.get("id") or 0)), reverse=True)


def _load_order(db: FileBackedDB, order_id: int) -> Order:
    row = db.get_record("orders", "id", order_id)
    if not row:
        raise ApiError(ErrorCode.ORDER_NOT_FOUND)
    return Order.from_dict(row)


def _check_refundable(order: Order) -> None:
    if order.payment_status == PaymentStatus.REFUNDED.value or order.status == OrderStatus.REFUNDED.value:
        raise ApiError(ErrorCode.ORDER_ALREADY_REFUNDED)
    if order.payment_status != PaymentStatus.PAID.value:
        raise ApiError(ErrorCode.ORDER_NOT_PAID)


def _generate_order_number() -> str:
    return f"ORD-{datetime.utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"


@router.post("", status_code=201)
@with_error_handler("POST /api/orders")
def create_order(
    payload: OrderCreate = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT)),
    db: FileBackedDB = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """
    Checkout. Prices every line from the catalog, reserves tracked stock and
    stores a pending, unpaid order for the signed-in customer.
    """
    if not identity.email:
        raise ApiError(ErrorCode.USER_NOT_FOUND, "User email not found")

    calc = calculate_order_prices(
        db,
        [(it.product_id, it.quantity) for it in payload.items],
        tax_rate=settings.TAX_RATE,
        shipping_cost=settings.SHIPPING_COST,
        currency=settings.DEFAULT_CURRENCY,
    )
    if payload.client_total is not None and not prices_match(payload.client_total, calc.total):
        raise ApiError(
            ErrorCode.PRICE_MISMATCH,
            details={"client_total": payload.client_total, "server_total": calc.total},
        )

    reserved = reserve_inventory(db, calc.items)
    now = now_iso()
    order = Order(
        order_number=_generate_order_number(),
        customer_name=payload.customer_name,
        customer_email=identity.email,
        customer_phone=payload.customer_phone,
        shipping_address=payload.shipping_address,
        shipping_city=payload.shipping_city,
        shipping_state=payload.shipping_state,
        shipping_zip=payload.shipping_zip,
        shipping_country=payload.shipping_country or "USA",
        items=calc.items,
        subtotal=calc.subtotal,
        tax=calc.tax,
        shipping_cost=calc.shipping_cost,
        total=calc.total,
        currency=calc.currency,
        payment_method=payload.payment_method,
        notes=payload.notes,
        created_at=now,
        updated_at=now,
    )
    try:
        saved = db.create_record("orders", order.to_dict(), unique=("order_number",))
    except Exception:
        # order could not be persisted: give the stock back
        release_inventory(db, reserved)
        raise
    logger.info("Order %s created for %s (total %.2f)", order.order_number, identity.email, calc.total)
    return {"order": Order.from_dict(saved).to_public()}


@router.get("")
@with_error_handler("GET /api/orders")
def list_orders(
    status: Optional[OrderStatus] = Query(None),
    identity: Identity = Depends(guard(RateLimitTier.MODERATE, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    """Admin: all orders, newest first."""
    where = {"status": status.value} if status else None
    rows = _newest_first(db.list_records("orders", where))
    orders = [Order.from_dict(r).to_public() for r in rows]
    return {"orders": orders, "count": len(orders)}


@router.get("/my-orders")
@with_error_handler("GET /api/orders/my-orders")
def my_orders(
    identity: Identity = Depends(guard(RateLimitTier.MODERATE)),
    db: FileBackedDB = Depends(get_db),
):
    if not identity.email:
        raise ApiError(ErrorCode.USER_NOT_FOUND, "User email not found")
    rows = _newest_first(db.list_records("orders", {"customer_email": identity.email}))
    orders = [Order.from_dict(r).to_public() for r in rows]
    return {"orders": orders, "count": len(orders)}


@router.get("/{order_id}")
@with_error_handler("GET /api/orders/[id]")
def get_order(
    order_id: str,
    identity: Identity = Depends(guard(RateLimitTier.MODERATE)),
    db: FileBackedDB = Depends(get_db),
):
    order = _load_order(db, parse_id(order_id, "order ID"))
    if not identity.is_admin and not order.belongs_to(identity.email):
        raise ApiError(ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS, "Not authorized to view this order")
    return order.to_public()


@router.put("/{order_id}")
@with_error_handler("PUT /api/orders/[id]")
def update_order(
    order_id: str,
    payload: OrderUpdate = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    """
    Admin: update status, payment status, tracking number or notes.
    A missing order is a 404; nothing is created.
    """
    oid = parse_id(order_id, "order ID")
    updates: Dict[str, Any] = payload.model_dump(exclude_none=True, mode="json")
    now = now_iso()
    updates["updated_at"] = now
    if payload.status is OrderStatus.SHIPPED:
        updates["shipped_at"] = now
    elif payload.status is OrderStatus.DELIVERED:
        updates["delivered_at"] = now

    updated = db.update_records("orders", {"id": oid}, updates)
    if not updated:
        raise ApiError(ErrorCode.ORDER_NOT_FOUND)
    logger.info("Order %s updated by admin %s: %s", oid, identity.user_id, sorted(updates))
    return Order.from_dict(updated).to_public()


@router.delete("/{order_id}")
@with_error_handler("DELETE /api/orders/[id]")
def delete_order(
    order_id: str,
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    oid = parse_id(order_id, "order ID")
    deleted = db.delete_records("orders", {"id": oid})
    if not deleted:
        raise ApiError(ErrorCode.ORDER_NOT_FOUND)
    logger.info("Order %s deleted by admin %s", oid, identity.user_id)
    return {"success": True, "message": "Order deleted successfully"}


@router.post("/{order_id}/cancel")
@with_error_handler("POST /api/orders/[id]/cancel")
def cancel_order(
    order_id: str,
    identity: Identity = Depends(guard(RateLimitTier.STRICT)),
    db: FileBackedDB = Depends(get_db),
):
    """
    Cancel a pending or processing order. Owner or admin.
    Paid orders get their stock back.
    """
    oid = parse_id(order_id, "order ID")
    order = _load_order(db, oid)
    if not identity.is_admin and not order.belongs_to(identity.email):
        raise ApiError(ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS, "Not allowed to cancel this order")
    if order.status == OrderStatus.CANCELLED.value:
        raise ApiError(ErrorCode.ORDER_ALREADY_CANCELLED)
    if not order.can_be_cancelled():
        raise ApiError(
            ErrorCode.ORDER_CANNOT_BE_CANCELLED,
            f"Order cannot be cancelled. Current status: {order.status}",
        )

    # only the request whose write lands may touch stock
    updated = db.update_records(
        "orders",
        {"id": oid, "status": order.status, "payment_status": order.payment_status},
        {"status": OrderStatus.CANCELLED.value, "updated_at": now_iso()},
    )
    if not updated:
        # status changed underneath us
        raise ApiError(ErrorCode.ORDER_CANNOT_BE_CANCELLED)

    inventory_restored = False
    if order.payment_status == PaymentStatus.PAID.value:
        restore_inventory(db, order.items)
        inventory_restored = True
    logger.info("Order %s cancelled by user %s", order.order_number, identity.user_id)
    return {
        "success": True,
        "message": "Order cancelled successfully",
        "order": Order.from_dict(updated).to_public(),
        "inventory_restored": inventory_restored,
    }


@router.post("/{order_id}/refund")
@with_error_handler("POST /api/orders/[id]/refund")
def refund_order(
    order_id: str,
    payload: RefundRequest = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    """Admin: refund a paid order, optionally putting its stock back."""
    oid = parse_id(order_id, "order ID")
    order = _load_order(db, oid)
    _check_refundable(order)

    amount = payload.refund_amount if payload.refund_amount is not None else order.total
    if amount > order.total:
        raise ApiError(
            ErrorCode.INVALID_REFUND_AMOUNT,
            f"Refund amount ({amount:.2f}) cannot exceed order total ({order.total:.2f})",
        )

    refund_note = f"[REFUND] {payload.reason} (Amount: {amount:.2f} {order.currency})"
    notes = f"{order.notes}\n\n{refund_note}" if order.notes else refund_note
    updated = db.update_records(
        "orders",
        {"id": oid, "status": order.status, "payment_status": PaymentStatus.PAID.value},
        {
            "status": OrderStatus.REFUNDED.value,
            "payment_status": PaymentStatus.REFUNDED.value,
            "notes": notes,
            "updated_at": now_iso(),
        },
    )
    if not updated:
        # refunded or cancelled by a concurrent request; report what happened
        _check_refundable(_load_order(db, oid))
        raise ApiError(ErrorCode.ORDER_MODIFIED)

    # a cancelled paid order already had its stock put back
    inventory_restored = payload.restore_inventory and order.status != OrderStatus.CANCELLED.value
    if inventory_restored:
        restore_inventory(db, order.items)
    logger.info("Order %s refunded %.2f by admin %s", order.order_number, amount, identity.user_id)
    return {
        "success": True,
        "message": "Order refunded successfully",
        "order": Order.from_dict(updated).to_public(),
        "refund": {
            "amount": amount,
            "reason": payload.reason,
            "inventory_restored": inventory_restored,
        },
    }
