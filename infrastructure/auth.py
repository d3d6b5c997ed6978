"""Password hashing (bcrypt) and access tokens (HS256 JWT).

Tokens carry the user id under ``userId`` plus an ``exp`` claim.

Usage::

    from infrastructure.auth import create_access_token, decode_access_token

    token = create_access_token(user.id, secret=config.jwt_secret, expires_in=3600)
    user_id = decode_access_token(token, secret=config.jwt_secret)
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# bcrypt only reads this many bytes of a password
PASSWORD_MAX_BYTES = 72


class InvalidToken(Exception):
    """The bearer token is malformed, expired or carries no user id."""


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > PASSWORD_MAX_BYTES


def hash_password(password: str) -> str:
    """bcrypt-hash *password*.

    Raises:
        ValueError: If the password is longer than ``PASSWORD_MAX_BYTES``.
    """
    if password_too_long(password):
        raise ValueError(f"password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check *password* against a stored hash.

    Over-long passwords never match, since none can have been hashed.
    """
    if password_too_long(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(
    user_id: str,
    *,
    secret: str,
    expires_in: int,
    now: datetime | None = None,
) -> str:
    """Sign a token for *user_id* valid for *expires_in* seconds."""
    issued = now or datetime.now(UTC)
    payload = {
        "userId": user_id,
        "iat": issued,
        "exp": issued + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, *, secret: str) -> str:
    """Verify *token* and return the user id it was issued for.

    Raises:
        InvalidToken: On bad signature, expiry, or a missing ``userId``.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as exc:
        raise InvalidToken(str(exc)) from exc
    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidToken("token has no userId claim")
    return user_id
