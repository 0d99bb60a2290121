"""
Midtrans notification handling.

The gateway drives the transaction lifecycle (pending → paid / expired /
failed) and reports each transition through an HTTP notification. This
module verifies the notification signature and applies the resulting
payment status to every order that carries the gateway order id, so a
batch payment settles all of its member orders at once.

Signature: sha512(order_id + status_code + gross_amount + server_key), hex.
Verification fails closed when the server key is not configured.
"""
import hashlib
import hmac
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Order, Payment
from domain.enums import PaymentStatus
from services.order_store import OrderStore

logger = logging.getLogger(__name__)


_STATUS_MAP = {
    "settlement": PaymentStatus.PAID,
    "pending": PaymentStatus.PENDING,
    "deny": PaymentStatus.FAILED,
    "cancel": PaymentStatus.FAILED,
    "expire": PaymentStatus.FAILED,
    "failure": PaymentStatus.FAILED,
}


def compute_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}".encode("utf-8")
    return hashlib.sha512(raw).hexdigest()


def verify_signature(data: dict, server_key: str) -> bool:
    """Check the notification's signature_key against our server key."""
    if not server_key:
        logger.error(
            "MIDTRANS_SERVER_KEY not configured — rejecting notification. "
            "Set MIDTRANS_SERVER_KEY in .env to accept Midtrans notifications."
        )
        return False

    signature = data.get("signature_key") or ""
    if not signature:
        logger.warning("Notification received without signature_key")
        return False

    expected = compute_signature(
        str(data.get("order_id", "")),
        str(data.get("status_code", "")),
        str(data.get("gross_amount", "")),
        server_key,
    )
    return hmac.compare_digest(expected, signature)


def map_transaction_status(transaction_status: str, fraud_status: Optional[str] = None) -> Optional[PaymentStatus]:
    """Translate a Midtrans transaction_status into our payment status."""
    status = (transaction_status or "").lower()
    if status == "capture":
        # Card captures flagged for review stay pending until Midtrans decides
        if fraud_status in (None, "", "accept"):
            return PaymentStatus.PAID
        if fraud_status == "challenge":
            return PaymentStatus.PENDING
        return PaymentStatus.FAILED
    return _STATUS_MAP.get(status)


def _should_apply(order: Order, gateway_order_id: str, payment_status: PaymentStatus) -> bool:
    """
    Paid is final: a late pending/expire notification never reopens an order.
    A superseded gateway id (the order has since moved to another session)
    may still settle the order but cannot downgrade it.
    """
    if order.payment_status == PaymentStatus.PAID.value:
        if payment_status != PaymentStatus.PAID:
            logger.info(
                f"  Order {order.id} already paid; ignoring {payment_status.value} for {gateway_order_id}"
            )
        return False
    if payment_status != PaymentStatus.PAID and order.midtrans_order_id != gateway_order_id:
        logger.info(
            f"  Order {order.id} moved to {order.midtrans_order_id}; "
            f"ignoring {payment_status.value} for {gateway_order_id}"
        )
        return False
    return True


async def process_notification(data: dict, db: AsyncSession) -> dict:
    """
    Apply a verified notification to the order store.

    Returns a small status dict for the webhook response body.
    """
    gateway_order_id = data.get("order_id", "")
    transaction_status = data.get("transaction_status", "")
    fraud_status = data.get("fraud_status")

    logger.info(
        f"  📩 Midtrans notification: order={gateway_order_id} "
        f"status={transaction_status} fraud={fraud_status}"
    )

    orders = await OrderStore(db).find_by_gateway_id(gateway_order_id)
    if not orders:
        logger.warning(f"  Notification for unknown payment id: {gateway_order_id}")
        return {"status": "ignored", "reason": "unknown_order"}

    payment_status = map_transaction_status(transaction_status, fraud_status)
    if payment_status is None:
        logger.debug(f"  Notification status ignored: {transaction_status}")
        return {"status": "ignored", "reason": f"unhandled_status_{transaction_status}"}

    transaction_id = data.get("transaction_id") or gateway_order_id
    payment_type = data.get("payment_type") or "midtrans"
    now = datetime.utcnow()

    existing = await db.execute(
        select(Payment).where(
            Payment.transaction_id == transaction_id,
            Payment.order_id.in_([o.id for o in orders]),
        )
    )
    payments_by_order = {p.order_id: p for p in existing.scalars().all()}

    for order in orders:
        if _should_apply(order, gateway_order_id, payment_status):
            order.payment_status = payment_status.value
            order.updated_at = now
            if payment_status == PaymentStatus.PAID:
                order.transaction_id = transaction_id
                order.payment_method = payment_type

        payment = payments_by_order.get(order.id)
        if payment is None:
            db.add(Payment(
                order_id=order.id,
                transaction_id=transaction_id,
                amount=order.total_amount,
                payment_method=payment_type,
                status=payment_status.value,
                midtrans_response=data,
            ))
        else:
            payment.status = payment_status.value
            payment.midtrans_response = data
            payment.updated_at = now

    await db.commit()

    if payment_status == PaymentStatus.PAID:
        logger.info(f"  ✅ Payment {gateway_order_id} settled for {len(orders)} order(s)")
    elif payment_status == PaymentStatus.FAILED:
        logger.warning(f"  ⚠️ Payment {gateway_order_id} → {transaction_status}")

    return {
        "status": payment_status.value,
        "orderIds": [o.id for o in orders],
    }
