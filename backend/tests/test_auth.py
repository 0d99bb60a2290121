"""
Tests for bearer-token authentication.

Tests: decode_access_token, user_from_claims, require_user.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi import HTTPException

from config import settings
from middleware.auth import (
    _parse_bearer_token,
    decode_access_token,
    get_optional_user,
    issue_access_token,
    require_user,
    user_from_claims,
)


class TestBearerParsing:

    @pytest.mark.unit
    def test_parses_bearer_token(self):
        assert _parse_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.unit
    def test_scheme_is_case_insensitive(self):
        assert _parse_bearer_token("bearer xyz") == "xyz"

    @pytest.mark.unit
    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer"])
    def test_rejects_malformed_headers(self, header):
        assert _parse_bearer_token(header) is None


class TestDecodeAccessToken:

    @pytest.mark.unit
    def test_round_trips_issued_token(self):
        token = issue_access_token(user_id="user-123", email="a@b.c", phone="0812")
        claims = decode_access_token(token)
        assert claims["sub"] == "user-123"
        assert claims["aud"] == "authenticated"

    @pytest.mark.unit
    def test_expired_token_rejected(self):
        token = issue_access_token(user_id="user-123", ttl_minutes=-5)
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail

    @pytest.mark.unit
    def test_wrong_secret_rejected(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode(
            {"sub": "user-123", "aud": "authenticated", "exp": exp},
            "some-other-secret",
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 401

    @pytest.mark.unit
    def test_wrong_audience_rejected(self):
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode(
            {"sub": "user-123", "aud": "anon", "exp": exp},
            settings.supabase_jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token(token)
        assert exc_info.value.status_code == 401

    @pytest.mark.unit
    def test_missing_secret_is_server_error(self, monkeypatch):
        monkeypatch.setattr(settings, "supabase_jwt_secret", "")
        with pytest.raises(HTTPException) as exc_info:
            decode_access_token("whatever")
        assert exc_info.value.status_code == 500


class TestCurrentUser:

    @pytest.mark.unit
    def test_user_from_claims_reads_metadata_phone(self):
        user = user_from_claims({"sub": "u1", "email": "x@y.z", "user_metadata": {"phone": "0811"}})
        assert user.id == "u1"
        assert user.email == "x@y.z"
        assert user.phone == "0811"

    @pytest.mark.unit
    def test_user_from_claims_defaults(self):
        user = user_from_claims({"sub": "u1"})
        assert user.email is None
        assert user.phone is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_optional_user_none_without_header(self):
        assert await get_optional_user(authorization=None) is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_require_user_401_without_header(self):
        with pytest.raises(HTTPException) as exc_info:
            await require_user(authorization=None)
        assert exc_info.value.status_code == 401
        assert "Authentication required" in exc_info.value.detail

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_require_user_returns_identity(self):
        token = issue_access_token(user_id="parent-1", email="p@example.com")
        user = await require_user(authorization=f"Bearer {token}")
        assert user.id == "parent-1"
        assert user.email == "p@example.com"
