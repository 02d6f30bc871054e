from __future__ import annotations

# ruff: noqa: E402
import sys
import uuid
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = PROJECT_ROOT / "backend"
for path in (PROJECT_ROOT, BACKEND_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import pytest
from alembic import command
from fastapi.testclient import TestClient

from wanderplan.ai.client import reset_ai_client
from wanderplan.core.app import create_app
from wanderplan.core.db import dispose_engine, session_scope
from wanderplan.core.settings import settings
from wanderplan.models import Base
from wanderplan.services.auth_service import get_login_rate_limiter
from wanderplan.services.generation_worker import reset_generation_worker
from wanderplan.utils.metrics import reset_metrics_registry

from backend.tests.utils.db import alembic_config
from backend.tests.utils.factories import register_and_login, seed_plan


@pytest.fixture(scope="session", autouse=True)
def configure_test_database(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Point settings.database_url to a throwaway SQLite file for tests."""

    original_url = settings.database_url
    original_log_dir = settings.log_directory
    db_path = tmp_path_factory.mktemp("db") / "wanderplan_test.sqlite3"
    settings.database_url = f"sqlite:///{db_path}"
    settings.log_directory = str(tmp_path_factory.mktemp("logs"))
    dispose_engine()
    yield settings.database_url
    dispose_engine()
    settings.database_url = original_url
    settings.log_directory = original_log_dir


@pytest.fixture(scope="session", autouse=True)
def apply_migrations(configure_test_database: str) -> None:
    """Run Alembic migrations once for the SQLite test database."""

    config = alembic_config(configure_test_database)
    dispose_engine()
    command.upgrade(config, "head")
    yield
    dispose_engine()
    command.downgrade(config, "base")


@pytest.fixture(autouse=True)
def deterministic_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock AI without delays, in-memory rate limiting and cheap hashing."""

    monkeypatch.setattr(settings, "debug", False)
    monkeypatch.setattr(settings, "ai_provider", "mock")
    monkeypatch.setattr(settings, "ai_mock_delay_s", 0.0)
    monkeypatch.setattr(settings, "ai_retry_base_delay_s", 0.0)
    monkeypatch.setattr(settings, "rate_limit_backend", "memory")
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "generation_worker_enabled", True)
    monkeypatch.setattr(settings, "generation_estimated_seconds", 300)
    reset_ai_client()
    reset_generation_worker()
    get_login_rate_limiter().reset()
    yield
    reset_ai_client()
    reset_generation_worker()


@pytest.fixture(autouse=True)
def clean_tables(apply_migrations: None) -> None:
    yield
    with session_scope() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())


@pytest.fixture()
def app():
    reset_metrics_registry()
    return create_app()


@pytest.fixture()
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def user(client: TestClient) -> dict:
    return register_and_login(client, f"traveller_{uuid.uuid4().hex[:8]}@example.com")


@pytest.fixture()
def other_user(client: TestClient) -> dict:
    return register_and_login(client, f"other_{uuid.uuid4().hex[:8]}@example.com")


@pytest.fixture()
def plan_factory():
    return seed_plan
