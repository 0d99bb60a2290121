"""
Payment Routes — Midtrans checkout sessions and notifications.

Endpoints:
    OPTIONS /create-payment          — CORS preflight (empty 200)
    POST    /create-payment          — create or recover a Snap session
    POST    /orders/{order_id}/pay   — pay (or re-pay) one of the caller's orders
    POST    /orders/batch-pay        — one checkout for several orders
    POST    /payments/notification   — Midtrans HTTP notification (signed)

/create-payment keeps the response contract the frontend was built
against: errors are HTTP 500 with {"error": <message>, "code": <kind>}.
The order-level endpoints use the standard error envelope.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from deps import get_orchestrator, get_payment_config
from domain.errors import DomainError, PermissionDeniedError, ValidationError
from middleware.auth import CurrentUser, require_user
from middleware.rate_limit import rate_limit
from models import BatchPaymentRequest, CreatePaymentRequest
from services import notification_service
from services.midtrans_client import PaymentConfig
from services.payment_service import PaymentOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


async def _check_ownership(
    orchestrator: PaymentOrchestrator,
    user: CurrentUser,
    gateway_order_id: str | None,
    order_ids: list[str],
) -> None:
    """
    Callers may only stamp a payment id onto their own orders, and may only
    reuse a gateway id that belongs to their own orders (a reused id hands
    back the existing session's token and virtual account).
    """
    if gateway_order_id:
        holders = await orchestrator.store.find_by_gateway_id(gateway_order_id)
        if any(o.user_id != user.id for o in holders):
            raise PermissionDeniedError("Order ID belongs to another account")

    ids = list(dict.fromkeys(order_ids))
    if not ids:
        return
    owned = await orchestrator.store.get_orders(ids, user_id=user.id)
    if len(owned) != len(ids):
        raise ValidationError("One or more orders were not found", field="batchOrderIds")


# ════════════════════════════════════════════════════════════════════
# Gateway session creation
# ════════════════════════════════════════════════════════════════════


@router.options("/create-payment")
async def create_payment_preflight():
    return Response(status_code=200)


@router.post("/create-payment")
async def create_payment(
    req: CreatePaymentRequest,
    user: CurrentUser = Depends(require_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    _rate=Depends(rate_limit()),
):
    """Create a Midtrans transaction, or recover the session for a reused order id."""
    targets = list(req.batch_order_ids or [])
    if req.local_order_id:
        targets.append(req.local_order_id)

    try:
        await _check_ownership(orchestrator, user, req.order_id, targets)
        return await orchestrator.create_payment(
            order_id=req.order_id,
            amount=req.amount,
            customer_details=req.customer_details.model_dump() if req.customer_details else None,
            item_details=[i.model_dump() for i in req.item_details] if req.item_details else None,
            batch_order_ids=req.batch_order_ids,
            local_order_id=req.local_order_id,
        )
    except DomainError as e:
        logger.error(f"Error creating payment: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": e.message, "code": e.code},
        )


@router.post("/orders/batch-pay")
async def pay_batch(
    req: BatchPaymentRequest,
    user: CurrentUser = Depends(require_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    _rate=Depends(rate_limit()),
):
    """Single checkout covering several pending orders."""
    return await orchestrator.pay_batch(
        req.order_ids,
        user_id=user.id,
        email=user.email,
        phone=user.phone,
    )


@router.post("/orders/{order_id}/pay")
async def pay_order(
    order_id: str,
    user: CurrentUser = Depends(require_user),
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
    _rate=Depends(rate_limit()),
):
    """Start or resume payment for a single order."""
    return await orchestrator.pay_order(
        order_id,
        user_id=user.id,
        email=user.email,
        phone=user.phone,
    )


# ════════════════════════════════════════════════════════════════════
# Notifications
# ════════════════════════════════════════════════════════════════════


@router.post("/payments/notification")
async def midtrans_notification(
    request: Request,
    config: PaymentConfig = Depends(get_payment_config),
    db: AsyncSession = Depends(get_db),
):
    """
    Midtrans HTTP notification.

    Always verifies the signature (fails closed without a server key).
    """
    try:
        data = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not notification_service.verify_signature(data, config.server_key):
        raise HTTPException(status_code=401, detail="Invalid notification signature")

    return await notification_service.process_notification(data, db)
