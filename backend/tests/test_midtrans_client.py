"""
Tests for the Midtrans gateway client.

Uses httpx.MockTransport so no request leaves the process.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import base64
import json

import httpx
import pytest

from config import Settings
from domain.errors import ConfigError, GatewayConflictError, GatewayError, GatewayTransportError
from services.midtrans_client import MidtransClient, PaymentConfig, basic_auth_header

SERVER_KEY = "SB-Mid-server-abc123"


def _client(handler, server_key=SERVER_KEY):
    return MidtransClient(
        PaymentConfig(server_key=server_key),
        transport=httpx.MockTransport(handler),
    )


class TestPaymentConfig:

    @pytest.mark.unit
    def test_sandbox_urls_by_default(self):
        config = PaymentConfig.from_settings(Settings(midtrans_server_key="k", midtrans_is_production=False))
        assert config.snap_base_url == "https://app.sandbox.midtrans.com"
        assert config.api_base_url == "https://api.sandbox.midtrans.com"

    @pytest.mark.unit
    def test_production_urls(self):
        config = PaymentConfig.from_settings(Settings(midtrans_server_key="k", midtrans_is_production=True))
        assert config.snap_base_url == "https://app.midtrans.com"
        assert config.api_base_url == "https://api.midtrans.com"

    @pytest.mark.unit
    def test_basic_auth_header_uses_empty_password(self):
        header = basic_auth_header(SERVER_KEY)
        assert header.startswith("Basic ")
        assert base64.b64decode(header[6:]).decode() == f"{SERVER_KEY}:"


class TestCreateTransaction:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_posts_payload_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"token": "tok-1", "redirect_url": "https://pay/tok-1"})

        result = await _client(handler).create_transaction({"transaction_details": {"order_id": "ORDER-1"}})

        assert result["token"] == "tok-1"
        assert seen["url"] == "https://app.sandbox.midtrans.com/snap/v1/transactions"
        assert seen["auth"] == basic_auth_header(SERVER_KEY)
        assert seen["body"]["transaction_details"]["order_id"] == "ORDER-1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_reused_order_id_is_a_conflict(self):
        def handler(request):
            return httpx.Response(
                400,
                json={"error_messages": ["transaction_details.order_id Order ID has been utilized previously"]},
            )

        with pytest.raises(GatewayConflictError) as exc_info:
            await _client(handler).create_transaction({})
        assert exc_info.value.gateway_status == 400
        assert exc_info.value.message.startswith("Midtrans API error:")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_other_errors_are_not_conflicts(self):
        def handler(request):
            return httpx.Response(401, text='{"error_messages":["Access denied"]}')

        with pytest.raises(GatewayError) as exc_info:
            await _client(handler).create_transaction({})
        assert not isinstance(exc_info.value, GatewayConflictError)
        assert "Access denied" in exc_info.value.message

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayTransportError):
            await _client(handler).create_transaction({})

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_server_key_sends_nothing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(201, json={})

        with pytest.raises(ConfigError):
            await _client(handler, server_key="").create_transaction({})
        assert calls == []


class TestGetStatus:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_status_body(self):
        def handler(request):
            assert request.method == "GET"
            assert str(request.url) == "https://api.sandbox.midtrans.com/v2/BATCH-1-abc/status"
            return httpx.Response(200, json={
                "status_code": "201",
                "transaction_status": "pending",
                "va_numbers": [{"bank": "permata", "va_number": "123"}],
            })

        data = await _client(handler).get_status("BATCH-1-abc")
        assert data["transaction_status"] == "pending"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_body_level_404_is_an_error(self):
        def handler(request):
            return httpx.Response(200, json={"status_code": "404", "status_message": "Transaction doesn't exist."})

        with pytest.raises(GatewayError) as exc_info:
            await _client(handler).get_status("ORDER-missing")
        assert exc_info.value.gateway_status == 404

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error_status(self):
        def handler(request):
            return httpx.Response(500, text="upstream down")

        with pytest.raises(GatewayError):
            await _client(handler).get_status("ORDER-1")
