from __future__ import annotations

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from wanderplan.core.logging import get_logger
from wanderplan.core.security import TokenError, decode_access_token
from wanderplan.core.settings import settings
from wanderplan.services.auth_service import AuthService, CurrentUser
from wanderplan.utils.api_errors import AuthenticationFailure, classify_database_error

LOGGER = get_logger(__name__)


def extract_token(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""

    header = request.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    cookie = request.cookies.get(settings.auth_cookie_name)
    return cookie or None


def get_current_user(request: Request) -> CurrentUser:
    token = extract_token(request)
    if not token:
        raise AuthenticationFailure("Authentication required")
    try:
        user_id = decode_access_token(token)
    except TokenError as exc:
        code = "TOKEN_EXPIRED" if exc.expired else "INVALID_TOKEN"
        raise AuthenticationFailure("Invalid or expired token", code) from exc

    try:
        user = AuthService.load_user(user_id)
    except SQLAlchemyError as exc:
        raise classify_database_error(exc) from exc
    if user is None:
        LOGGER.info("auth.token_user_missing", extra={"user_id": user_id})
        raise AuthenticationFailure("Invalid or expired token", "INVALID_TOKEN")
    return user
