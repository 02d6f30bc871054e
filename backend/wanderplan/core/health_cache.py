from __future__ import annotations

from time import monotonic
from typing import Any, Awaitable, Callable

HealthResult = dict[str, Any]


class CachedHealthCheck:
    """Run an async health check at most once per ``ttl`` seconds."""

    def __init__(
        self, check: Callable[[], Awaitable[HealthResult]], ttl: float
    ) -> None:
        self._check = check
        self._ttl = ttl
        self._result: HealthResult | None = None
        self._checked_at: float | None = None

    async def run(self, use_cache: bool = True) -> HealthResult:
        if use_cache and self._fresh():
            return self._result
        result = await self._check()
        if use_cache:
            self._result = result
            self._checked_at = monotonic()
        return result

    def invalidate(self) -> None:
        self._result = None
        self._checked_at = None

    def _fresh(self) -> bool:
        if self._result is None or self._checked_at is None:
            return False
        return monotonic() - self._checked_at < self._ttl
