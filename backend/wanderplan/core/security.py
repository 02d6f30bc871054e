from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

import bcrypt
import jwt

from wanderplan.core.logging import get_logger
from wanderplan.core.settings import settings

LOGGER = get_logger(__name__)


class TokenError(Exception):
    """Raised when an access token cannot be decoded or has expired."""

    def __init__(self, message: str, *, expired: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.expired = expired


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds),
    ).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as exc:
        LOGGER.warning("auth.bcrypt_check_failed", extra={"error": str(exc)})
        return False


@lru_cache(maxsize=4)
def _placeholder_hash(rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(b"wanderplan-placeholder", salt).decode("utf-8")


def reject_unknown_password(password: str) -> bool:
    """Run one bcrypt check for an unknown account so it costs as much as a real one."""
    verify_password(password, _placeholder_hash(settings.bcrypt_rounds))
    return False


def create_access_token(user_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_min),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_access_token(token: str) -> str:
    """Return the user id stored in ``token``."""

    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("token expired", expired=True) from exc
    except jwt.PyJWTError as exc:
        raise TokenError("invalid token") from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise TokenError("invalid token")
    return subject


__all__ = [
    "TokenError",
    "create_access_token",
    "decode_access_token",
    "hash_password",
    "reject_unknown_password",
    "verify_password",
]
