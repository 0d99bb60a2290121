"""
User authentication helpers.

Access tokens are issued by Supabase Auth: HS256 JWTs signed with the
project's JWT secret, audience "authenticated", `sub` = auth user id. The
backend never issues tokens to browsers; it only verifies them.

issue_access_token() signs a token in the same shape for local tooling and
tests.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from fastapi import HTTPException, Header
from typing import Optional

import jwt

from config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def decode_access_token(token: str) -> dict:
    if not settings.supabase_jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience,
            options={"require": ["exp", "sub"]},
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Access token expired.")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid access token.")


def issue_access_token(
    *,
    user_id: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    ttl_minutes: int = 60,
) -> str:
    if not settings.supabase_jwt_secret:
        raise HTTPException(
            status_code=500,
            detail="Server auth misconfigured (JWT secret missing).",
        )
    now = _now_utc()
    exp = now.replace(microsecond=0) + timedelta(minutes=ttl_minutes)
    payload = {
        "sub": user_id,
        "aud": settings.supabase_jwt_audience,
        "role": "authenticated",
        "email": email,
        "user_metadata": {"phone": phone} if phone else {},
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm="HS256")


def user_from_claims(payload: dict) -> CurrentUser:
    metadata = payload.get("user_metadata") or {}
    return CurrentUser(
        id=payload["sub"],
        email=payload.get("email") or None,
        phone=metadata.get("phone") or payload.get("phone") or None,
    )


async def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Optional[CurrentUser]:
    """Authenticated user if a bearer token is present, else None."""
    token = _parse_bearer_token(authorization)
    if not token:
        return None
    return user_from_claims(decode_access_token(token))


async def require_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    user = await get_optional_user(authorization=authorization)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required. Provide Authorization: Bearer <token>.",
        )
    return user
