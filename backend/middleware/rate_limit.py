"""
In-memory rate limiting for payment endpoints.

Every payment call ends in a request to Midtrans, so a double-clicking
parent (or a misbehaving client) is throttled per caller: the authenticated
user id when a bearer token is present, else the client IP.

Uses a simple sliding-window counter per (caller, route) key.
Not shared between worker processes.
"""
import time
import logging
from collections import defaultdict
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window rate limiter keyed by an arbitrary string."""

    def __init__(self):
        # {key: [timestamp1, timestamp2, ...]}
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _cleanup(self, key: str, window_seconds: int):
        """Remove expired timestamps from the window."""
        cutoff = time.time() - window_seconds
        self._requests[key] = [ts for ts in self._requests[key] if ts > cutoff]

    def check(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """Record a hit for `key`; False if the window is already full."""
        self._cleanup(key, window_seconds)

        if len(self._requests[key]) >= max_requests:
            return False

        self._requests[key].append(time.time())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        self._cleanup(key, window_seconds)
        return max(0, max_requests - len(self._requests[key]))

    def reset(self):
        self._requests.clear()


# Global rate limiter instance
_limiter = RateLimiter()


def caller_key(request: Request) -> str:
    """User id from the bearer token's subject when decodable, else client IP."""
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        try:
            claims = jwt.decode(
                authorization.split(" ", 1)[1].strip(),
                options={"verify_signature": False},
            )
            if claims.get("sub"):
                return f"user:{claims['sub']}"
        except jwt.InvalidTokenError:
            pass
    return f"ip:{request.client.host if request.client else 'unknown'}"


def rate_limit(max_requests: Optional[int] = None, window_seconds: int = 60):
    """
    FastAPI dependency factory for rate limiting.

    Args:
        max_requests: Maximum requests allowed in the window
            (default: settings.payment_rate_limit)
        window_seconds: Time window in seconds
    """
    async def _check_rate_limit(request: Request):
        limit = max_requests or settings.payment_rate_limit
        key = f"{caller_key(request)}:{request.url.path}"

        if not _limiter.check(key, limit, window_seconds):
            remaining = _limiter.remaining(key, limit, window_seconds)
            logger.warning(f"Rate limit exceeded: {key} ({limit}/{window_seconds}s)")
            raise HTTPException(
                status_code=429,
                detail=f"Too many payment requests. Maximum {limit} requests "
                       f"per {window_seconds} seconds. Try again later.",
                headers={
                    "Retry-After": str(window_seconds),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": str(remaining),
                },
            )

    return _check_rate_limit
