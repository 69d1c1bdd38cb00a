"""JWT verification tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from turf.auth.jwt import create_access_token, verify_token
from turf.config import get_settings


def _encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _claims(**overrides) -> dict:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "42",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": get_settings().jwt_issuer,
        "type": "access",
    }
    claims.update(overrides)
    return claims


def test_round_trip():
    payload = verify_token(create_access_token(42, email="runner@example.com"))
    assert payload["sub"] == "42"
    assert payload["email"] == "runner@example.com"
    assert payload["type"] == "access"


def test_expired_token():
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = _encode(_claims(iat=past - timedelta(minutes=5), exp=past))
    with pytest.raises(jwt.InvalidTokenError, match="expired"):
        verify_token(token)


def test_wrong_type():
    with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
        verify_token(_encode(_claims(type="refresh")))


def test_wrong_issuer():
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(_encode(_claims(iss="someone-else")))


def test_non_numeric_subject():
    with pytest.raises(jwt.InvalidTokenError, match="subject"):
        verify_token(_encode(_claims(sub="alice")))


def test_bad_signature():
    settings = get_settings()
    token = jwt.encode(_claims(), "x" * 64, algorithm=settings.jwt_algorithm)
    with pytest.raises(jwt.InvalidTokenError):
        verify_token(token)
