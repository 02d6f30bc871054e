from __future__ import annotations

# provider outages worth another attempt
RETRYABLE_ERROR_TYPES = frozenset(
    {"timeout", "network_error", "provider_unavailable", "rate_limited"}
)
# failures reported to users as a temporary outage
TRANSIENT_ERROR_TYPES = RETRYABLE_ERROR_TYPES | {"circuit_open"}


class AiClientError(Exception):
    """Failure of the itinerary provider, normalized to an ``error_type``.

    ``details`` ends up in ``generation_errors.error_details`` and must stay
    JSON serializable.
    """

    def __init__(
        self,
        error_type: str,
        message: str,
        *,
        status_code: int | None = None,
        details: dict | None = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.type = error_type
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.attempts = attempts

    @property
    def retryable(self) -> bool:
        return self.type in RETRYABLE_ERROR_TYPES

    @property
    def transient(self) -> bool:
        return self.type in TRANSIENT_ERROR_TYPES

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "status_code": self.status_code,
            "attempts": self.attempts,
            "details": self.details,
        }
