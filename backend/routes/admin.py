"""
Admin endpoints — user roles, kitchen recap, sales reports, daily menus.

Endpoints:
    GET  /admin/users                 — profiles with resolved role (admin)
    PUT  /admin/users/{user_id}/role  — change a user's role (admin)
    GET  /admin/orders/recap          — all orders with items (cashier, admin)
    GET  /admin/reports               — revenue and daily totals (admin)
    POST /admin/daily-menus/populate  — open the next 7 days of menus (admin)
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import require_admin, require_staff
from domain.responses import success_response
from middleware.auth import CurrentUser
from models import RoleUpdateRequest
from services import menu_service, order_service, role_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def list_users(
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await role_service.list_users(db))


@router.put("/users/{user_id}/role")
async def update_role(
    user_id: str,
    req: RoleUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    role = await role_service.update_user_role(db, user_id=user_id, role=req.role)
    logger.info(f"Admin {admin.id[:8]}... changed role of {user_id[:8]}... to {role}")
    return success_response({"user_id": user_id, "role": role})


@router.get("/orders/recap")
async def orders_recap(
    _staff: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    orders = await order_service.order_recap(db)
    return success_response([order_service.serialize_order(o) for o in orders])


@router.get("/reports")
async def reports(
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await order_service.build_report(db))


@router.post("/daily-menus/populate")
async def populate_daily_menus(
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await menu_service.populate_daily_menus(db))
