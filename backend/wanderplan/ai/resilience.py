"""Circuit breaker guarding calls to the HTTP itinerary provider."""

from __future__ import annotations

from threading import Lock
from time import monotonic
from typing import Callable

from wanderplan.ai.exceptions import AiClientError
from wanderplan.core.logging import get_logger

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


class CircuitBreaker:
    """Stop calling the provider after ``failure_threshold`` outages in a row.

    While open every call fails fast with ``circuit_open``. Once
    ``recovery_seconds`` have passed one trial call is let through; its
    outcome closes the circuit again or reopens it.
    """

    def __init__(
        self,
        *,
        failure_threshold: int,
        recovery_seconds: float,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.failure_threshold = max(int(failure_threshold), 1)
        self.recovery_seconds = max(float(recovery_seconds), 0.0)
        self._clock = clock
        self._state = CLOSED
        self._failures = 0
        self._opened_at: float | None = None
        self._lock = Lock()
        self._logger = get_logger(__name__)

    @property
    def state(self) -> str:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def before_call(self) -> None:
        with self._lock:
            if self._state != OPEN:
                return
            assert self._opened_at is not None
            if self._clock() - self._opened_at >= self.recovery_seconds:
                self._state = HALF_OPEN
                self._logger.info("ai_circuit.half_open")
                return
        raise AiClientError(
            "circuit_open",
            "AI provider is temporarily disabled after repeated failures",
        )

    def record_success(self) -> None:
        with self._lock:
            if self._state != CLOSED:
                self._logger.info("ai_circuit.closed")
            self._state = CLOSED
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._state == HALF_OPEN or self._failures >= self.failure_threshold:
                self._state = OPEN
                self._opened_at = self._clock()
                self._logger.warning(
                    "ai_circuit.opened",
                    extra={"failures": self._failures},
                )
