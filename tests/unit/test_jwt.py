"""Unit tests for sender identity tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from questhub.auth.jwt import create_access_token, verify_token
from questhub.config import get_settings


def _encode(**overrides) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "0xalice",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestAccessTokens:

    def test_round_trip_subject(self):
        payload = verify_token(create_access_token("0xalice"))
        assert payload["sub"] == "0xalice"
        assert payload["type"] == "access"

    def test_expired_token(self):
        token = _encode(exp=datetime.now(timezone.utc) - timedelta(seconds=1))
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_type(self):
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(_encode(type="refresh"))

    def test_wrong_issuer(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(_encode(iss="someone-else"))

    def test_missing_subject(self):
        with pytest.raises(jwt.InvalidTokenError, match="no subject"):
            verify_token(_encode(sub=None))

    def test_bad_signature(self):
        token = jwt.encode({"sub": "0xalice", "type": "access"}, "x" * 32, algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
