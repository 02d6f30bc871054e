from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from time import time

from anyio import to_thread
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from wanderplan.core.db import session_scope
from wanderplan.core.logging import get_logger
from wanderplan.core.redis import get_redis_client, redis_enabled
from wanderplan.core.security import (
    create_access_token,
    hash_password,
    reject_unknown_password,
    verify_password,
)
from wanderplan.core.settings import settings
from wanderplan.models.orm import User
from wanderplan.models.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    SessionSchema,
    UserSchema,
)
from wanderplan.repositories import UserRepository
from wanderplan.utils.api_errors import (
    AuthenticationFailure,
    ConflictFailure,
    RateLimitFailure,
    classify_database_error,
)

INVALID_CREDENTIALS = "Invalid email or password"


class LoginRateLimiter:
    """Sliding window of failed logins per client address.

    Uses a redis sorted set ``ratelimit:login:{ip}`` when the redis backend
    is configured and falls back to an in-process dict when redis errors.
    """

    KEY_PREFIX = "ratelimit:login:"
    SWEEP_THRESHOLD = 1024

    def __init__(self) -> None:
        self._attempts: dict[str, list[float]] = {}
        self._lock = Lock()
        self._logger = get_logger(__name__)

    @property
    def max_attempts(self) -> int:
        return max(int(settings.login_max_attempts), 1)

    @property
    def window_seconds(self) -> int:
        return max(int(settings.login_window_seconds), 1)

    async def is_allowed(self, ip: str) -> bool:
        now = time()
        if redis_enabled():
            try:
                key = f"{self.KEY_PREFIX}{ip}"
                pipe = get_redis_client().pipeline()
                pipe.zremrangebyscore(key, "-inf", now - self.window_seconds)
                pipe.zcard(key)
                pipe.expire(key, self.window_seconds)
                _, count, _ = await pipe.execute()
                return int(count) < self.max_attempts
            except RedisError as exc:
                self._logger.warning(
                    "auth.rate_limit_redis_failed",
                    extra={"error": str(exc)},
                )

        with self._lock:
            return len(self._prune(ip, now)) < self.max_attempts

    async def record_failure(self, ip: str) -> None:
        now = time()
        if redis_enabled():
            try:
                key = f"{self.KEY_PREFIX}{ip}"
                pipe = get_redis_client().pipeline()
                pipe.zadd(key, {str(now): now})
                pipe.expire(key, self.window_seconds)
                await pipe.execute()
                return
            except RedisError as exc:
                self._logger.warning(
                    "auth.rate_limit_redis_failed",
                    extra={"error": str(exc)},
                )

        with self._lock:
            if len(self._attempts) >= self.SWEEP_THRESHOLD:
                self._sweep(now)
            self._attempts.setdefault(ip, []).append(now)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()

    def tracked_addresses(self) -> int:
        with self._lock:
            return len(self._attempts)

    def _prune(self, ip: str, now: float) -> list[float]:
        """Drop expired attempts; addresses without recent failures hold no entry."""
        attempts = self._attempts.get(ip)
        if not attempts:
            return []
        threshold = now - self.window_seconds
        recent = [ts for ts in attempts if ts > threshold]
        if recent:
            self._attempts[ip] = recent
        else:
            del self._attempts[ip]
        return recent

    def _sweep(self, now: float) -> None:
        for ip in list(self._attempts):
            self._prune(ip, now)


@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: str
    email: str


class AuthService:
    """Registration, credential checks and token issuing."""

    def __init__(self, *, rate_limiter: LoginRateLimiter | None = None) -> None:
        self._rate_limiter = rate_limiter or get_login_rate_limiter()
        self._logger = get_logger(__name__)

    def register(self, payload: RegisterRequest) -> UserSchema:
        try:
            with session_scope() as session:
                repo = UserRepository(session)
                if repo.get_by_email(payload.email) is not None:
                    raise ConflictFailure("User with this email already exists")
                user = repo.add(
                    User(
                        email=payload.email,
                        password_hash=hash_password(payload.password),
                    )
                )
                result = UserSchema.model_validate(user)
        except IntegrityError as exc:
            # lost a race against a concurrent registration
            raise ConflictFailure("User with this email already exists") from exc
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc

        self._logger.info("auth.registered", extra={"user_id": result.id})
        return result

    async def login(self, payload: LoginRequest, *, client_ip: str) -> AuthResponse:
        if not await self._rate_limiter.is_allowed(client_ip):
            self._logger.warning("auth.login_rate_limited", extra={"ip": client_ip})
            raise RateLimitFailure(
                "Too many login attempts. Please try again later.",
                retry_after=self._rate_limiter.window_seconds,
            )

        try:
            # bcrypt and the session are blocking; keep them off the event loop
            result = await to_thread.run_sync(self._check_credentials, payload)
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc

        if result is None:
            await self._rate_limiter.record_failure(client_ip)
            self._logger.info("auth.login_failed", extra={"ip": client_ip})
            raise AuthenticationFailure(INVALID_CREDENTIALS, "INVALID_CREDENTIALS")

        self._logger.info("auth.login_succeeded", extra={"user_id": result.id})
        return AuthResponse(
            user=result,
            session=SessionSchema(
                access_token=create_access_token(result.id),
                expires_in=int(settings.jwt_expire_min) * 60,
            ),
        )

    @staticmethod
    def _check_credentials(payload: LoginRequest) -> UserSchema | None:
        with session_scope() as session:
            user = UserRepository(session).get_by_email(payload.email)
            if user is None:
                reject_unknown_password(payload.password)
                return None
            if not verify_password(payload.password, user.password_hash):
                return None
            user.last_login_at = datetime.now(timezone.utc)
            return UserSchema.model_validate(user)

    @staticmethod
    def load_user(user_id: str) -> CurrentUser | None:
        with session_scope() as session:
            user = UserRepository(session).get(user_id)
            if user is None:
                return None
            return CurrentUser(id=user.id, email=user.email)


_login_rate_limiter: LoginRateLimiter | None = None
_auth_service: AuthService | None = None


def get_login_rate_limiter() -> LoginRateLimiter:
    global _login_rate_limiter
    if _login_rate_limiter is None:
        _login_rate_limiter = LoginRateLimiter()
    return _login_rate_limiter


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
