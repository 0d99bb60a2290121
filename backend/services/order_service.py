"""
Order service — parent order history, staff status transitions, admin recap
and sales reports.
"""
import logging
from collections import OrderedDict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order
from domain.constants import UNKNOWN_ITEM_NAME
from domain.enums import OrderStatus, PaymentStatus
from domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

REPORT_DAYS = 7


def serialize_order(order: Order) -> dict:
    """Order with its items; a deleted menu item shows up as 'Unknown Item'."""
    return {
        "id": order.id,
        "order_number": order.order_number,
        "child_name": order.child_name,
        "child_class": order.child_class,
        "total_amount": order.total_amount,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "midtrans_order_id": order.midtrans_order_id,
        "delivery_date": order.delivery_date.isoformat() if order.delivery_date else None,
        "notes": order.notes,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "order_items": [
            {
                "id": item.id,
                "quantity": item.quantity,
                "price": item.price,
                "menu_items": (
                    {"name": item.menu_item.name, "image_url": item.menu_item.image_url or ""}
                    if item.menu_item is not None
                    else {"name": UNKNOWN_ITEM_NAME, "image_url": ""}
                ),
            }
            for item in order.order_items
        ],
    }


def _validate_status(status: str) -> str:
    try:
        return OrderStatus(status).value
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Unknown status '{status}' (expected one of: {allowed})", field="status")


async def list_user_orders(
    db: AsyncSession,
    *,
    user_id: str,
    status: Optional[str] = None,
) -> list[Order]:
    query = select(Order).where(Order.user_id == user_id)
    if status and status != "all":
        query = query.where(Order.status == _validate_status(status))
    result = await db.execute(query.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


def summarize_orders(orders: list[Order]) -> dict:
    """Counts per status tab plus the orders still awaiting payment."""
    counts = {"all": len(orders)}
    for s in OrderStatus:
        counts[s.value] = sum(1 for o in orders if o.status == s.value)

    pending_payment = [o for o in orders if o.payment_status == PaymentStatus.PENDING.value]
    return {
        "counts": counts,
        "pending_payment_order_ids": [o.id for o in pending_payment],
        "pending_payment_total": sum(o.total_amount for o in pending_payment),
    }


async def update_order_status(db: AsyncSession, *, order_id: str, status: str) -> Order:
    new_status = _validate_status(status)
    result = await db.execute(select(Order).where(Order.id == order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order", order_id)

    old_status = order.status
    order.status = new_status
    await db.commit()
    logger.info(f"Order {order_id} status: {old_status} → {new_status}")
    return order


async def order_recap(db: AsyncSession) -> list[Order]:
    """All orders with items, newest first (kitchen recap)."""
    result = await db.execute(select(Order).order_by(Order.created_at.desc()))
    return list(result.scalars().all())


async def build_report(db: AsyncSession) -> dict:
    """
    Sales report over every order.

    Revenue only counts paid orders; the daily series groups all orders by
    creation date and keeps the most recent REPORT_DAYS dates.
    """
    result = await db.execute(select(Order).order_by(Order.created_at.desc()))
    orders = list(result.scalars().all())

    paid = [o for o in orders if o.payment_status == PaymentStatus.PAID.value]

    daily: "OrderedDict[str, dict]" = OrderedDict()
    for order in orders:
        if order.created_at is None:
            continue
        day = order.created_at.date().isoformat()
        bucket = daily.setdefault(day, {"date": day, "amount": 0.0, "orders": 0})
        bucket["amount"] += order.total_amount
        bucket["orders"] += 1

    return {
        "total_orders": len(orders),
        "total_revenue": sum(o.total_amount for o in paid),
        "paid_orders": len(paid),
        "daily": list(daily.values())[:REPORT_DAYS],
        "recent_orders": [
            {
                "id": o.id,
                "child_name": o.child_name,
                "child_class": o.child_class,
                "total_amount": o.total_amount,
                "payment_status": o.payment_status,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in orders[:10]
        ],
    }
