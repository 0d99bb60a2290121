"""
Order endpoints — a parent's own orders and staff status updates.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import require_staff
from domain.responses import success_response
from middleware.auth import CurrentUser, require_user
from models import OrderStatusUpdateRequest
from services import order_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("")
async def list_my_orders(
    status: Optional[str] = Query(None, description="all | pending | confirmed | preparing | delivered"),
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's orders, newest first."""
    orders = await order_service.list_user_orders(db, user_id=user.id, status=status)
    return success_response([order_service.serialize_order(o) for o in orders])


@router.get("/summary")
async def my_order_summary(
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Tab counts and the orders that can be selected for batch payment."""
    orders = await order_service.list_user_orders(db, user_id=user.id)
    return success_response(order_service.summarize_orders(orders))


@router.put("/{order_id}/status")
async def update_status(
    order_id: str,
    req: OrderStatusUpdateRequest,
    staff: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    order = await order_service.update_order_status(db, order_id=order_id, status=req.status)
    logger.info(f"Order {order_id} updated by {staff.id[:8]}...")
    return success_response({"id": order.id, "status": order.status})
