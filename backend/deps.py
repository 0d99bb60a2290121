"""
Shared FastAPI dependencies.

Centralizes the DB session, the caller's identity and role guards, and the
payment orchestrator wiring so routers import from a single place.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from domain.enums import Role
from domain.errors import PermissionDeniedError
from middleware.auth import CurrentUser, require_user
from services import role_service
from services.midtrans_client import MidtransClient, PaymentConfig
from services.order_store import OrderStore
from services.payment_service import PaymentOrchestrator


def get_payment_config() -> PaymentConfig:
    return PaymentConfig.from_settings(settings)


def get_gateway(config: PaymentConfig = Depends(get_payment_config)) -> MidtransClient:
    return MidtransClient(config)


def get_orchestrator(
    config: PaymentConfig = Depends(get_payment_config),
    gateway: MidtransClient = Depends(get_gateway),
    db: AsyncSession = Depends(get_db),
) -> PaymentOrchestrator:
    return PaymentOrchestrator(config, gateway, OrderStore(db))


def require_role(*roles: Role):
    """
    Dependency factory: allow the request only if the caller's resolved role
    is one of `roles`.

    Usage:
        @router.get("/admin/reports")
        async def reports(user: CurrentUser = Depends(require_role(Role.ADMIN))):
            ...
    """
    allowed = {r.value for r in roles}

    async def _check(
        user: CurrentUser = Depends(require_user),
        db: AsyncSession = Depends(get_db),
    ) -> CurrentUser:
        role = await role_service.resolve_role(db, user.id)
        if role not in allowed:
            raise PermissionDeniedError(
                f"Role '{role}' may not access this endpoint.",
                details={"required": sorted(allowed)},
            )
        return user

    return _check


require_admin = require_role(Role.ADMIN)
require_staff = require_role(Role.CASHIER, Role.ADMIN)
