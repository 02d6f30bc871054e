from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from time import perf_counter
from typing import Deque, Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import ASGIApp


@dataclass
class RouteStats:
    """Aggregated statistics for a single HTTP route."""

    method: str
    path: str
    count: int = 0
    error_count: int = 0
    total_ms: float = 0.0
    last_ms: float = 0.0
    last_status: int = 0
    durations: Deque[float] = field(default_factory=lambda: deque(maxlen=200))

    def add(self, duration_ms: float, status_code: int) -> None:
        self.count += 1
        if status_code >= 500:
            self.error_count += 1
        self.total_ms += duration_ms
        self.last_ms = duration_ms
        self.last_status = status_code
        self.durations.append(duration_ms)

    def as_dict(self) -> dict:
        avg_ms = self.total_ms / self.count if self.count else 0.0
        p95 = _percentile(list(self.durations), 0.95)
        return {
            "method": self.method,
            "path": self.path,
            "count": self.count,
            "error_count": self.error_count,
            "avg_ms": round(avg_ms, 3),
            "p95_ms": round(p95, 3) if p95 is not None else None,
            "last_ms": round(self.last_ms, 3),
            "last_status": self.last_status,
        }


def _percentile(values: List[float], percentile: float) -> float | None:
    if not values:
        return None
    ordered = sorted(values)
    k = (len(ordered) - 1) * percentile
    lower = int(k)
    upper = min(lower + 1, len(ordered) - 1)
    if lower == upper:
        return ordered[lower]
    frac = k - lower
    return ordered[lower] + (ordered[upper] - ordered[lower]) * frac


class MetricsRegistry:
    """Thread-safe in-memory store for per-route request metrics."""

    def __init__(self) -> None:
        self._routes: Dict[Tuple[str, str], RouteStats] = {}
        self._total_requests = 0
        self._lock = Lock()

    def record(
        self,
        method: str,
        path: str,
        duration_ms: float,
        status_code: int,
    ) -> None:
        key = (method, path)
        with self._lock:
            route_stat = self._routes.get(key)
            if route_stat is None:
                route_stat = RouteStats(method=method, path=path)
                self._routes[key] = route_stat
            route_stat.add(duration_ms, status_code)
            self._total_requests += 1

    def snapshot(self) -> dict:
        with self._lock:
            routes = [stats.as_dict() for stats in self._routes.values()]
            total = self._total_requests
        routes.sort(key=lambda item: item["count"], reverse=True)
        return {"total_requests": total, "routes": routes}

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()
            self._total_requests = 0


metrics_registry = MetricsRegistry()


def _route_template(request: Request) -> str:
    # group /api/plans/<uuid> style paths under their route template
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class APIMetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records request metrics for later inspection."""

    def __init__(self, app: ASGIApp, registry: MetricsRegistry | None = None) -> None:
        super().__init__(app)
        self._registry = registry or metrics_registry

    async def dispatch(self, request: Request, call_next) -> Response:
        start = perf_counter()
        response = await call_next(request)
        elapsed = (perf_counter() - start) * 1000
        self._registry.record(
            request.method,
            _route_template(request),
            elapsed,
            response.status_code,
        )
        return response


def get_metrics_registry() -> MetricsRegistry:
    return metrics_registry


def reset_metrics_registry() -> None:
    metrics_registry.reset()
