"""
Midtrans gateway client — thin transport wrapper around two endpoints:

    POST {snap}/snap/v1/transactions   — create a Snap transaction
    GET  {api}/v2/{order_id}/status    — look up an existing transaction

Responsibilities stop at HTTP transport, Basic-auth header construction and
JSON (de)serialization. Business decisions (what to do on a reused order id)
live in the payment orchestrator; this module only classifies the failure:

    GatewayTransportError — network failure / timeout
    GatewayConflictError  — order id already utilized
    GatewayError          — any other non-2xx response
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from domain.constants import ORDER_ID_UTILIZED_MARKER
from domain.errors import ConfigError, GatewayConflictError, GatewayError, GatewayTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentConfig:
    """Explicit gateway configuration handed to the client and orchestrator."""
    server_key: str
    snap_base_url: str = "https://app.sandbox.midtrans.com"
    api_base_url: str = "https://api.sandbox.midtrans.com"
    va_bank: str = "permata"
    va_expiry_days: int = 7
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings) -> "PaymentConfig":
        return cls(
            server_key=settings.midtrans_server_key,
            snap_base_url=settings.midtrans_snap_base_url,
            api_base_url=settings.midtrans_api_base_url,
            va_bank=settings.midtrans_va_bank,
            va_expiry_days=settings.midtrans_va_expiry_days,
            timeout_seconds=settings.midtrans_timeout_seconds,
        )


def basic_auth_header(server_key: str) -> str:
    """Midtrans uses the server key as username with an empty password."""
    token = base64.b64encode(f"{server_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class MidtransClient:
    """Async HTTP client for the Midtrans Snap and Core status APIs."""

    def __init__(
        self,
        config: PaymentConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    def _headers(self) -> dict:
        if not self.config.server_key:
            raise ConfigError("Midtrans server key not configured")
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": basic_auth_header(self.config.server_key),
        }

    async def _send(self, method: str, url: str, payload: Optional[dict] = None) -> httpx.Response:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                return await client.request(method, url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Midtrans unreachable ({method} {url}): {e}")
            raise GatewayTransportError(f"Midtrans unreachable: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                "Midtrans returned a non-JSON response",
                gateway_status=response.status_code,
                response_text=response.text,
            ) from e

    async def create_transaction(self, payload: dict) -> dict:
        """
        Create a Snap transaction.

        Returns:
            dict with at least `token` and `redirect_url`.

        Raises:
            GatewayConflictError if the order id was used before,
            GatewayError for any other non-2xx response.
        """
        url = f"{self.config.snap_base_url}/snap/v1/transactions"
        response = await self._send("POST", url, payload)

        if response.is_success:
            return self._json(response)

        error_text = response.text
        logger.error(f"Midtrans error ({response.status_code}): {error_text}")

        if ORDER_ID_UTILIZED_MARKER in error_text:
            raise GatewayConflictError(
                f"Midtrans API error: {error_text}",
                gateway_status=response.status_code,
                response_text=error_text,
            )
        raise GatewayError(
            f"Midtrans API error: {error_text}",
            gateway_status=response.status_code,
            response_text=error_text,
        )

    async def get_status(self, order_id: str) -> dict:
        """
        Fetch the current state of an existing transaction.

        Midtrans answers unknown ids with HTTP 200 and a body-level
        status_code of 404, so both levels are checked.
        """
        url = f"{self.config.api_base_url}/v2/{order_id}/status"
        response = await self._send("GET", url)

        if not response.is_success:
            raise GatewayError(
                f"Midtrans status lookup failed: {response.text}",
                gateway_status=response.status_code,
                response_text=response.text,
            )

        data = self._json(response)
        body_status = str(data.get("status_code", "200"))
        if body_status.startswith(("4", "5")) and "transaction_status" not in data:
            raise GatewayError(
                f"Midtrans status lookup failed: {data.get('status_message', body_status)}",
                gateway_status=int(body_status) if body_status.isdigit() else None,
                response_text=response.text,
            )
        return data
