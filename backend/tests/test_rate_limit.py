"""
Tests for the in-memory payment rate limiter.

Tests: RateLimiter sliding window, caller_key resolution, rate_limit dependency.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import time
import pytest
import jwt
from fastapi import HTTPException
from unittest.mock import MagicMock

from middleware.rate_limit import RateLimiter, caller_key, rate_limit


def _request(headers=None, host="10.0.0.1", path="/create-payment"):
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    request.url.path = path
    return request


class TestRateLimiter:
    """Tests for the RateLimiter class."""

    @pytest.mark.unit
    def test_allows_requests_under_limit(self):
        limiter = RateLimiter()
        for _ in range(5):
            assert limiter.check("testkey", max_requests=5, window_seconds=60) is True

    @pytest.mark.unit
    def test_blocks_requests_over_limit(self):
        limiter = RateLimiter()
        for _ in range(3):
            limiter.check("testkey", max_requests=3, window_seconds=60)
        # 4th request should be blocked
        assert limiter.check("testkey", max_requests=3, window_seconds=60) is False

    @pytest.mark.unit
    def test_different_keys_independent(self):
        limiter = RateLimiter()
        for _ in range(3):
            limiter.check("key1", max_requests=3, window_seconds=60)
        assert limiter.check("key1", max_requests=3, window_seconds=60) is False
        assert limiter.check("key2", max_requests=3, window_seconds=60) is True

    @pytest.mark.unit
    def test_remaining_count(self):
        limiter = RateLimiter()
        assert limiter.remaining("testkey", max_requests=5, window_seconds=60) == 5
        limiter.check("testkey", max_requests=5, window_seconds=60)
        assert limiter.remaining("testkey", max_requests=5, window_seconds=60) == 4

    @pytest.mark.unit
    def test_remaining_at_zero(self):
        """remaining() should return 0 when limit is reached, not negative."""
        limiter = RateLimiter()
        for _ in range(6):
            limiter.check("testkey", max_requests=5, window_seconds=60)
        assert limiter.remaining("testkey", max_requests=5, window_seconds=60) == 0

    @pytest.mark.unit
    def test_cleanup_removes_old_entries(self):
        limiter = RateLimiter()
        old_time = time.time() - 120
        limiter._requests["testkey"] = [old_time, old_time + 1, old_time + 2]
        limiter._cleanup("testkey", 60)
        assert len(limiter._requests["testkey"]) == 0

    @pytest.mark.unit
    def test_reset_clears_all_keys(self):
        limiter = RateLimiter()
        limiter.check("a", max_requests=1, window_seconds=60)
        limiter.reset()
        assert limiter.check("a", max_requests=1, window_seconds=60) is True


class TestCallerKey:

    @pytest.mark.unit
    def test_uses_token_subject(self):
        token = jwt.encode({"sub": "user-1"}, "any-secret", algorithm="HS256")
        key = caller_key(_request({"authorization": f"Bearer {token}"}))
        assert key == "user:user-1"

    @pytest.mark.unit
    def test_falls_back_to_ip_without_token(self):
        assert caller_key(_request(host="192.168.1.7")) == "ip:192.168.1.7"

    @pytest.mark.unit
    def test_garbage_token_falls_back_to_ip(self):
        key = caller_key(_request({"authorization": "Bearer not-a-jwt"}, host="1.2.3.4"))
        assert key == "ip:1.2.3.4"


class TestRateLimitDependency:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_raises_429_with_headers_when_exceeded(self):
        check = rate_limit(max_requests=2, window_seconds=60)
        request = _request(host="172.16.0.9")

        await check(request)
        await check(request)
        with pytest.raises(HTTPException) as exc_info:
            await check(request)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers["Retry-After"] == "60"
        assert exc_info.value.headers["X-RateLimit-Limit"] == "2"
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_limits_are_per_route(self):
        check = rate_limit(max_requests=1, window_seconds=60)
        await check(_request(host="172.16.0.10", path="/create-payment"))
        # Same caller, different route
        await check(_request(host="172.16.0.10", path="/orders/batch-pay"))
