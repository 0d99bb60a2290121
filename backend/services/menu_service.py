"""
Menu service — menu items and their per-date availability.
"""
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import DailyMenu, MenuItem
from domain.constants import DAILY_MENU_DAYS, DAILY_MENU_MAX_QUANTITY
from domain.errors import NotFoundError

logger = logging.getLogger(__name__)


def serialize_menu_item(item: MenuItem) -> dict:
    return {
        "id": item.id,
        "category_id": item.category_id,
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "price": item.price,
        "is_available": bool(item.is_available),
    }


async def list_available(db: AsyncSession) -> list[MenuItem]:
    result = await db.execute(
        select(MenuItem).where(MenuItem.is_available == True).order_by(MenuItem.name)  # noqa: E712
    )
    return list(result.scalars().all())


async def create_menu_item(
    db: AsyncSession,
    *,
    name: str,
    price: float,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
    category_id: Optional[str] = None,
    is_available: bool = True,
) -> MenuItem:
    item = MenuItem(
        name=name,
        price=price,
        description=description,
        image_url=image_url,
        category_id=category_id,
        is_available=is_available,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def update_menu_item(db: AsyncSession, *, item_id: str, changes: dict) -> MenuItem:
    item = (await db.execute(select(MenuItem).where(MenuItem.id == item_id))).scalar_one_or_none()
    if item is None:
        raise NotFoundError("Menu item", item_id)

    for field, value in changes.items():
        setattr(item, field, value)
    await db.commit()
    await db.refresh(item)
    return item


async def populate_daily_menus(db: AsyncSession, *, start: Optional[date] = None) -> dict:
    """
    Make every available menu item orderable for the next DAILY_MENU_DAYS days.

    Existing (date, item) rows are overwritten the same way: current price,
    re-enabled, quantities reset.
    """
    start = start or date.today()
    items = await list_available(db)
    if not items:
        logger.info("No menu items found")
        return {"created": 0, "updated": 0, "days": DAILY_MENU_DAYS}

    dates = [start + timedelta(days=i) for i in range(DAILY_MENU_DAYS)]
    existing_rows = await db.execute(
        select(DailyMenu).where(
            DailyMenu.date.in_(dates),
            DailyMenu.food_item_id.in_([i.id for i in items]),
        )
    )
    existing = {(row.date, row.food_item_id): row for row in existing_rows.scalars().all()}

    created = updated = 0
    for day in dates:
        for item in items:
            row = existing.get((day, item.id))
            if row is None:
                db.add(DailyMenu(
                    date=day,
                    food_item_id=item.id,
                    price=item.price,
                    is_available=True,
                    max_quantity=DAILY_MENU_MAX_QUANTITY,
                    current_quantity=0,
                ))
                created += 1
            else:
                row.price = item.price
                row.is_available = True
                row.max_quantity = DAILY_MENU_MAX_QUANTITY
                row.current_quantity = 0
                updated += 1

    await db.commit()
    logger.info(f"Daily menus populated: {created} created, {updated} refreshed")
    return {"created": created, "updated": updated, "days": DAILY_MENU_DAYS}
