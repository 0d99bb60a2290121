"""
Payment orchestration — turns canteen orders into Midtrans checkout sessions.

Handles:
    1. Validation of the gateway order id and amount (before any network call)
    2. Snap transaction creation with a reusable bank-transfer virtual account
    3. Recovery when the gateway order id was already used: the existing
       session is looked up and returned instead of failing
    4. Propagation of the gateway order id onto the local order (single)
       or onto every member order (batch), after the gateway accepted it

Failures are raised as the typed errors in domain/errors.py.
"""
import logging
import secrets
import string
import time
from typing import Optional

from domain.constants import (
    BATCH_ORDER_PREFIX,
    DEFAULT_CUSTOMER_EMAIL,
    DEFAULT_CUSTOMER_NAME,
    DEFAULT_CUSTOMER_PHONE,
    RECOVERED_SESSION_MESSAGE,
    SINGLE_ORDER_PREFIX,
    UNKNOWN_ITEM_NAME,
)
from domain.enums import PaymentStatus
from domain.errors import (
    ConfigError,
    GatewayConflictError,
    GatewayError,
    GatewayTransportError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from services.midtrans_client import PaymentConfig
from services.order_store import OrderStore

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_gateway_order_id(prefix: str, *, now_ms: Optional[int] = None) -> str:
    """`<prefix>-<epoch ms>-<9 base36 chars>`, e.g. ORDER-1718000000000-k3j9x0a2b."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{now_ms}-{suffix}"


def build_customer_details(
    name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
) -> dict:
    return {
        "first_name": name or DEFAULT_CUSTOMER_NAME,
        "email": email or DEFAULT_CUSTOMER_EMAIL,
        "phone": phone or DEFAULT_CUSTOMER_PHONE,
    }


def _item_name(order_item) -> str:
    menu_item = order_item.menu_item
    return menu_item.name if menu_item is not None and menu_item.name else UNKNOWN_ITEM_NAME


def _is_positive(amount) -> bool:
    if amount is None or isinstance(amount, bool):
        return False
    try:
        return amount > 0
    except TypeError:
        return False


def _gross_amount(amount):
    # IDR has no minor unit; Midtrans rejects 15000.0 but accepts 15000
    value = float(amount)
    return int(value) if value.is_integer() else value


class PaymentOrchestrator:
    """
    Coordinates the gateway client and the order store for one request.

    Args:
        config: gateway configuration (server key, VA bank, expiry)
        gateway: object exposing `create_transaction(payload)` and
            `get_status(order_id)` coroutines (MidtransClient in production)
        store: order store used to read orders and persist gateway ids
    """

    def __init__(self, config: PaymentConfig, gateway, store: Optional[OrderStore] = None):
        self.config = config
        self.gateway = gateway
        self.store = store

    # ── Gateway request ─────────────────────────────────────────────

    def build_snap_payload(
        self,
        order_id: str,
        amount,
        customer_details: Optional[dict],
        item_details: Optional[list],
    ) -> dict:
        return {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": _gross_amount(amount),
            },
            "customer_details": customer_details or build_customer_details(None, None, None),
            "item_details": [
                {**item, "price": _gross_amount(item["price"])} if "price" in item else item
                for item in item_details or []
            ],
            "credit_card": {"secure": True},
            # Same order id + bank transfer keeps the virtual account reusable
            "payment_type": "bank_transfer",
            "bank_transfer": {"bank": self.config.va_bank},
            "custom_expiry": {
                "expiry_duration": self.config.va_expiry_days,
                "unit": "day",
            },
        }

    # ── Core flow ───────────────────────────────────────────────────

    async def create_payment(
        self,
        *,
        order_id: str,
        amount,
        customer_details: Optional[dict] = None,
        item_details: Optional[list] = None,
        batch_order_ids: Optional[list[str]] = None,
        local_order_id: Optional[str] = None,
    ) -> dict:
        """
        Create (or recover) a checkout session for `order_id`.

        Returns:
            {snap_token, redirect_url, virtual_account, payment_status}
            plus `message` when an existing session was recovered.
        """
        if not order_id or not str(order_id).strip():
            raise ValidationError("Order ID is required")
        if not _is_positive(amount):
            raise ValidationError("Valid amount is required")
        if not self.config.server_key:
            raise ConfigError("Midtrans server key not configured")

        logger.info(f"Creating payment for order: {order_id}")
        if batch_order_ids:
            logger.info(f"Batch order IDs: {batch_order_ids}")

        payload = self.build_snap_payload(order_id, amount, customer_details, item_details)

        try:
            snap = await self.gateway.create_transaction(payload)
        except GatewayConflictError as e:
            logger.info(f"Order ID {order_id} already exists, trying to get existing transaction...")
            return await self._recover_session(order_id, e)
        except GatewayTransportError as e:
            # A session may already exist for an id we handed out earlier
            if await self._is_assigned(order_id):
                logger.warning(f"Create call failed for assigned id {order_id}; looking up existing session")
                return await self._recover_session(order_id, e)
            raise

        targets = list(batch_order_ids or [])
        if not targets and local_order_id:
            targets = [local_order_id]
        if targets:
            if self.store is None:
                raise PersistenceError(
                    f"No order store available to record payment id {order_id}",
                    details={"order_ids": targets},
                )
            await self.store.assign_gateway_id(targets, order_id)

        return {
            "snap_token": snap.get("token"),
            "redirect_url": snap.get("redirect_url"),
            "virtual_account": snap.get("va_numbers") or None,
            "payment_status": PaymentStatus.PENDING.value,
        }

    async def _is_assigned(self, order_id: str) -> bool:
        if self.store is None:
            return False
        return bool(await self.store.find_by_gateway_id(order_id))

    async def _recover_session(self, order_id: str, cause: GatewayError) -> dict:
        try:
            status = await self.gateway.get_status(order_id)
        except GatewayError as lookup_error:
            logger.error(f"Status lookup for {order_id} failed: {lookup_error}")
            if not isinstance(cause, GatewayConflictError):
                raise cause from lookup_error
            # The conflict was not recoverable; surface it as a plain gateway error
            raise GatewayError(
                cause.message,
                gateway_status=cause.gateway_status,
                response_text=cause.response_text,
            ) from lookup_error

        logger.info(f"Existing transaction status for {order_id}: {status.get('transaction_status')}")
        return {
            "snap_token": status.get("snap_token") or None,
            "redirect_url": status.get("redirect_url") or None,
            "virtual_account": status.get("va_numbers") or None,
            "payment_status": status.get("transaction_status"),
            "message": RECOVERED_SESSION_MESSAGE,
        }

    # ── Order-level entry points ────────────────────────────────────

    async def pay_order(
        self,
        order_id: str,
        *,
        user_id: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> dict:
        """
        Single payment for one of the caller's orders.

        Reuses the order's gateway id when one exists so the same virtual
        account is offered again; otherwise a fresh ORDER-... id is generated.
        """
        order = await self.store.get_order(order_id, user_id=user_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        if order.payment_status == PaymentStatus.PAID.value:
            raise ValidationError("Order is already paid", field="order_id")

        gateway_order_id = order.midtrans_order_id or generate_gateway_order_id(SINGLE_ORDER_PREFIX)
        item_details = [
            {
                "id": item.id,
                "price": _gross_amount(item.price),
                "quantity": item.quantity,
                "name": _item_name(item),
            }
            for item in order.order_items
        ]

        result = await self.create_payment(
            order_id=gateway_order_id,
            amount=order.total_amount,
            customer_details=build_customer_details(order.child_name, email, phone),
            item_details=item_details,
            local_order_id=order.id,
        )
        return {**result, "order_id": gateway_order_id, "order_ids": [order.id]}

    async def pay_batch(
        self,
        order_ids: list[str],
        *,
        user_id: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> dict:
        """
        One gateway transaction covering several of the caller's orders.

        Every member order receives the same BATCH-... id once the gateway
        accepts the transaction.
        """
        requested = list(dict.fromkeys(order_ids or []))
        if not requested:
            raise ValidationError("Select at least one order to pay", field="order_ids")

        orders = await self.store.get_orders(requested, user_id=user_id)
        if len(orders) != len(requested):
            found = {o.id for o in orders}
            missing = [i for i in requested if i not in found]
            raise NotFoundError("Order", ", ".join(missing))

        paid = [o.id for o in orders if o.payment_status == PaymentStatus.PAID.value]
        if paid:
            raise ValidationError(
                "Some selected orders are already paid",
                field="order_ids",
                details={"paid_order_ids": paid},
            )

        batch_order_id = generate_gateway_order_id(BATCH_ORDER_PREFIX)
        total_amount = sum(o.total_amount for o in orders)
        first = orders[0]
        item_details = [
            {
                "id": f"{order.id}-{item.id}",
                "price": _gross_amount(item.price),
                "quantity": item.quantity,
                "name": f"{_item_name(item)} ({order.child_name})",
            }
            for order in orders
            for item in order.order_items
        ]

        logger.info(
            f"💳 Batch payment {batch_order_id}: {len(orders)} orders, total {total_amount}"
        )

        result = await self.create_payment(
            order_id=batch_order_id,
            amount=total_amount,
            customer_details=build_customer_details(first.child_name, email, phone),
            item_details=item_details,
            batch_order_ids=[o.id for o in orders],
        )
        return {**result, "order_id": batch_order_id, "order_ids": [o.id for o in orders]}
