from __future__ import annotations

from contextlib import contextmanager
from time import perf_counter
from typing import Any, Generator

from anyio import to_thread
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from wanderplan.core.health_cache import CachedHealthCheck, HealthResult
from wanderplan.core.settings import settings

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _connect_args(url: str) -> dict[str, Any]:
    if url.startswith("postgresql"):
        return {"connect_timeout": 1}
    if url.startswith("sqlite"):
        # request threads and the worker's event loop share one engine
        return {"check_same_thread": False}
    return {}


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = settings.database_url
        _engine = create_engine(
            url,
            connect_args=_connect_args(url),
            echo=settings.db_echo,
            pool_pre_ping=True,
        )
        if _engine.dialect.name == "sqlite":
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    return _engine


def get_session() -> Session:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Commit on success, roll back on any error, always close."""

    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Drop the engine so the next use rebuilds it from current settings."""

    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
    _db_health.invalidate()


def _ping() -> HealthResult:
    engine = get_engine()
    start = perf_counter()
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return {"status": "fail", "backend": engine.dialect.name, "error": str(exc)}
    return {
        "status": "ok",
        "backend": engine.dialect.name,
        "latency_ms": round((perf_counter() - start) * 1000, 3),
        "error": None,
    }


async def _check_database() -> HealthResult:
    return await to_thread.run_sync(_ping)


_db_health = CachedHealthCheck(_check_database, ttl=settings.health_cache_seconds)


async def check_db_health(use_cache: bool = True) -> HealthResult:
    return await _db_health.run(use_cache)
