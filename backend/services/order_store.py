"""
Order store — the slice of the orders table the payment flow reads and writes.

The orchestrator only needs three things from the database: load the
caller's orders, find orders by gateway id, and stamp a gateway id onto a
set of orders. The stamp is all-or-nothing: either every requested order
receives the id or none does.

Each stamp is also recorded in payment_sessions, so an order that moved
from one gateway id to another (single payment, then batch) is still found
under the earlier id.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order, PaymentSession
from domain.errors import PersistenceError

logger = logging.getLogger(__name__)


class OrderStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: str, *, user_id: Optional[str] = None) -> Optional[Order]:
        query = select(Order).where(Order.id == order_id)
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_orders(self, order_ids: Iterable[str], *, user_id: Optional[str] = None) -> list[Order]:
        """Load orders, preserving the requested order. Missing ids are skipped."""
        ids = list(dict.fromkeys(order_ids))
        if not ids:
            return []
        query = select(Order).where(Order.id.in_(ids))
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        result = await self.db.execute(query)
        by_id = {o.id: o for o in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def find_by_gateway_id(self, gateway_order_id: str) -> list[Order]:
        """Orders currently holding `gateway_order_id` or that held it before."""
        earlier = select(PaymentSession.order_id).where(
            PaymentSession.midtrans_order_id == gateway_order_id
        )
        result = await self.db.execute(
            select(Order).where(
                or_(Order.midtrans_order_id == gateway_order_id, Order.id.in_(earlier))
            )
        )
        return list(result.scalars().all())

    async def assign_gateway_id(self, order_ids: Iterable[str], gateway_order_id: str) -> int:
        """
        Write `gateway_order_id` onto every order in `order_ids` in one transaction.

        Raises:
            PersistenceError if any order is missing or the write fails;
            the session is rolled back so no order is left half-updated.
        """
        ids = list(dict.fromkeys(order_ids))
        if not ids:
            return 0

        try:
            result = await self.db.execute(
                update(Order)
                .where(Order.id.in_(ids))
                .values(midtrans_order_id=gateway_order_id, updated_at=datetime.utcnow())
            )
            if result.rowcount != len(ids):
                await self.db.rollback()
                raise PersistenceError(
                    f"Could not assign payment id {gateway_order_id}: "
                    f"{result.rowcount} of {len(ids)} orders found",
                    details={"order_ids": ids, "updated": result.rowcount},
                )

            recorded = await self.db.execute(
                select(PaymentSession.order_id).where(
                    PaymentSession.midtrans_order_id == gateway_order_id,
                    PaymentSession.order_id.in_(ids),
                )
            )
            already = set(recorded.scalars().all())
            self.db.add_all([
                PaymentSession(order_id=i, midtrans_order_id=gateway_order_id)
                for i in ids
                if i not in already
            ])
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to assign payment id {gateway_order_id}: {e}")
            raise PersistenceError(
                f"Could not assign payment id {gateway_order_id}",
                details={"order_ids": ids},
            ) from e

        logger.info(f"Updated {len(ids)} orders with payment ID: {gateway_order_id}")
        return len(ids)
