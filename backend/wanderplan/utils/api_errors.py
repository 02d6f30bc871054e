from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from sqlalchemy.exc import (
    DisconnectionError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class ApiError(Exception):
    """Base error carrying the HTTP status and machine readable code."""

    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details


class ValidationFailure(ApiError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationFailure(ApiError):
    status_code = 401
    default_code = "UNAUTHORIZED"


class NotFoundFailure(ApiError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictFailure(ApiError):
    status_code = 409
    default_code = "CONFLICT"


class RateLimitFailure(ApiError):
    status_code = 429
    default_code = "RATE_LIMITED"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        retry_after: int | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, code, details=details)
        self.retry_after = retry_after


class TransientFailure(ApiError):
    status_code = 503
    default_code = "NETWORK_ERROR"


class InternalFailure(ApiError):
    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"


TRANSIENT_DB_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


def classify_database_error(exc: SQLAlchemyError) -> ApiError:
    """Map a SQLAlchemy failure onto the transient or internal outcome."""

    if isinstance(exc, TRANSIENT_DB_ERRORS):
        return TransientFailure(
            "Database temporarily unavailable. Please try again later.",
            "NETWORK_ERROR",
        )
    return InternalFailure("Database operation failed.", "DATABASE_ERROR")


def validation_details(errors: Sequence[Any]) -> list[dict[str, str]]:
    """Flatten pydantic error entries into ``{"field", "message"}`` pairs."""

    details: list[dict[str, str]] = []
    for error in errors:
        location = [
            str(part)
            for part in error.get("loc", ())
            if part not in {"body", "query", "path"}
        ]
        details.append(
            {
                "field": ".".join(location) or "request",
                "message": str(error.get("msg", "invalid value")),
            }
        )
    return details


@dataclass(frozen=True, slots=True)
class ApiErrorDetail:
    request_id: str
    error_type: str
    detail: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "error_type": self.error_type,
            "detail": self.detail,
        }


def format_exception(exc: Exception, *, request_id: str) -> ApiErrorDetail:
    return ApiErrorDetail(
        request_id=request_id,
        error_type=exc.__class__.__name__,
        detail=str(exc),
    )


__all__ = [
    "ApiError",
    "ApiErrorDetail",
    "AuthenticationFailure",
    "ConflictFailure",
    "InternalFailure",
    "NotFoundFailure",
    "RateLimitFailure",
    "TransientFailure",
    "ValidationFailure",
    "classify_database_error",
    "format_exception",
    "validation_details",
]
