"""Bearer token handling.

The identity service issues the tokens; turf only verifies them. ``HS*``
algorithms share ``jwt_secret``, asymmetric ones read PEM files from
``jwt_public_key_path`` (and ``jwt_private_key_path`` when minting tokens for
tooling and tests).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, NamedTuple

import jwt

from turf.config import get_settings

TOKEN_TYPE_ACCESS = "access"


class _KeyPair(NamedTuple):
    signing: str
    verifying: str


@lru_cache(maxsize=1)
def _keys() -> _KeyPair:
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        return _KeyPair(settings.jwt_secret, settings.jwt_secret)
    private_path = Path(settings.jwt_private_key_path)
    return _KeyPair(
        signing=private_path.read_text() if private_path.exists() else "",
        verifying=Path(settings.jwt_public_key_path).read_text(),
    )


def reset_keys() -> None:
    """Forget loaded keys so the next call re-reads settings."""
    _keys.cache_clear()


def create_access_token(user_id: int, email: str | None = None) -> str:
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "type": TOKEN_TYPE_ACCESS,
        "iss": settings.jwt_issuer,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_access_token_expire_minutes),
    }
    return jwt.encode(claims, _keys().signing, algorithm=settings.jwt_algorithm)


def verify_token(token: str, expected_type: str = TOKEN_TYPE_ACCESS) -> dict[str, Any]:
    """Decode ``token`` and return its claims.

    Signature, expiry and issuer are checked by PyJWT. On top of that the
    token must carry ``expected_type`` and a numeric ``sub``. Every failure is
    raised as ``jwt.InvalidTokenError`` with a message fit for a 401 body.
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            _keys().verifying,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None

    token_type = claims.get("type")
    if token_type != expected_type:
        raise jwt.InvalidTokenError(f"Expected token type '{expected_type}', got '{token_type}'")
    if not str(claims["sub"]).isdigit():
        raise jwt.InvalidTokenError("Token subject is not a user id")
    return claims
