"""
Menu endpoints — public menu listing and admin menu management.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import require_admin
from domain.responses import success_response
from middleware.auth import CurrentUser
from models import MenuItemCreateRequest, MenuItemUpdateRequest
from services import menu_service

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("")
async def list_menu(db: AsyncSession = Depends(get_db)):
    items = await menu_service.list_available(db)
    return success_response([menu_service.serialize_menu_item(i) for i in items])


@router.post("", status_code=201)
async def create_menu_item(
    req: MenuItemCreateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await menu_service.create_menu_item(
        db,
        name=req.name,
        price=req.price,
        description=req.description,
        image_url=req.image_url,
        category_id=req.category_id,
        is_available=req.is_available,
    )
    return success_response(menu_service.serialize_menu_item(item))


@router.patch("/{item_id}")
async def update_menu_item(
    item_id: str,
    req: MenuItemUpdateRequest,
    _admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = await menu_service.update_menu_item(
        db,
        item_id=item_id,
        changes=req.model_dump(exclude_unset=True),
    )
    return success_response(menu_service.serialize_menu_item(item))
