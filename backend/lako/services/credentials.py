# Overview: Password hashing and signed access tokens.

"""
Credential Store

- Passwords hashed with bcrypt; cost factor comes from Settings.bcrypt_rounds
- verify_password fails closed: a malformed hash is a mismatch, not an error
- Access tokens are HS256 JWTs carrying {sub, iat, exp}
- burn_password_check spends the same bcrypt cost as a real check so login
  latency does not reveal whether a username exists
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache

import bcrypt
import jwt

from ..errors import AuthenticationError


JWT_ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = 12) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Return True if password matches hash, False otherwise (including bad hashes)."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=8)
def dummy_hash(rounds: int) -> str:
    """Hash compared against for unknown usernames; create_app warms it at startup."""
    return hash_password("lako-timing-equalizer", rounds)


def burn_password_check(password: str, rounds: int = 12) -> None:
    """Throwaway comparison for unknown usernames; result is ignored."""
    verify_password(password, dummy_hash(rounds))


def issue_token(user_id: int, ttl_seconds: int, secret: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(seconds=ttl_seconds),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def verify_token(token: str, secret: str) -> int:
    """Return the user id in a valid token; raise AuthenticationError otherwise."""
    if not token:
        raise AuthenticationError("invalid token")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("invalid token")

    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("invalid token")
