from __future__ import annotations

from alembic import command
from sqlalchemy import create_engine, inspect

from backend.tests.utils.db import alembic_config

CORE_TABLES = {"users", "plans", "attractions", "plan_activity", "generation_errors"}


def test_alembic_upgrade_and_downgrade(tmp_path) -> None:
    """Alembic scripts should run cleanly against a fresh SQLite database."""

    url = f"sqlite:///{tmp_path / 'migrations.sqlite3'}"
    cfg = alembic_config(url)
    engine = create_engine(url)

    try:
        command.upgrade(cfg, "head")
        inspector = inspect(engine)
        assert CORE_TABLES <= set(inspector.get_table_names())
        plan_columns = {column["name"] for column in inspector.get_columns("plans")}
        assert {"job_id", "status", "travel_style", "user_id"} <= plan_columns
        unique_sets = {
            tuple(item["column_names"])
            for item in inspector.get_unique_constraints("attractions")
        }
        assert ("name", "address") in unique_sets

        command.downgrade(cfg, "base")
        remaining = set(inspect(engine).get_table_names())
        assert CORE_TABLES.isdisjoint(remaining)
    finally:
        engine.dispose()
