from __future__ import annotations

from time import perf_counter

from redis.asyncio import Redis
from redis.exceptions import RedisError

from wanderplan.core.health_cache import CachedHealthCheck, HealthResult
from wanderplan.core.settings import settings

_redis_client: Redis | None = None


def redis_enabled() -> bool:
    return settings.rate_limit_backend == "redis"


def get_redis_client() -> Redis:
    """Shared client for the login rate limiter."""

    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
    return _redis_client


async def close_redis_client() -> None:
    global _redis_client
    client, _redis_client = _redis_client, None
    if client is not None:
        await client.aclose()
    _redis_health.invalidate()


async def _check_redis() -> HealthResult:
    start = perf_counter()
    try:
        await get_redis_client().ping()
    except (RedisError, OSError) as exc:
        return {"status": "fail", "error": str(exc)}
    return {
        "status": "ok",
        "latency_ms": round((perf_counter() - start) * 1000, 3),
        "error": None,
    }


_redis_health = CachedHealthCheck(_check_redis, ttl=settings.health_cache_seconds)


async def check_redis_health(use_cache: bool = True) -> HealthResult:
    if not redis_enabled():
        return {"status": "disabled", "error": None}
    return await _redis_health.run(use_cache)
