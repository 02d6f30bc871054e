"""Core tables: users, plans, attractions, plan_activity, generation_errors."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20260301_01"
down_revision = None
branch_labels = None
depends_on = None

UUID_TYPE = sa.String(length=36)
JSON_TYPE = sa.JSON().with_variant(
    postgresql.JSONB(astext_type=sa.Text()),
    "postgresql",
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID_TYPE, primary_key=True),
        sa.Column("email", sa.String(length=254), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "plans",
        sa.Column("id", UUID_TYPE, primary_key=True),
        sa.Column(
            "user_id",
            UUID_TYPE,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("destination", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("adults_count", sa.Integer(), nullable=False),
        sa.Column(
            "children_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column("budget_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("budget_currency", sa.String(length=3), nullable=True),
        sa.Column("travel_style", sa.String(length=10), nullable=True),
        sa.Column("job_id", UUID_TYPE, nullable=False, unique=True),
        sa.Column("status", sa.String(length=10), nullable=False),
        _created_at(),
        sa.CheckConstraint("adults_count >= 1", name="ck_plans_adults_count"),
        sa.CheckConstraint("children_count >= 0", name="ck_plans_children_count"),
    )
    op.create_index("ix_plans_user_id", "plans", ["user_id"])
    op.create_index("ix_plans_created_at", "plans", ["created_at"])

    op.create_table(
        "attractions",
        sa.Column("id", UUID_TYPE, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        _created_at(),
        sa.UniqueConstraint("name", "address", name="uq_attractions_name_address"),
    )

    op.create_table(
        "plan_activity",
        sa.Column("id", UUID_TYPE, primary_key=True),
        sa.Column(
            "plan_id",
            UUID_TYPE,
            sa.ForeignKey("plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "attraction_id",
            UUID_TYPE,
            sa.ForeignKey("attractions.id"),
            nullable=False,
        ),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("activity_order", sa.Integer(), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=True),
        sa.Column("custom_desc", sa.String(length=1000), nullable=True),
        sa.Column("opening_hours", sa.String(length=255), nullable=True),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "day_number >= 1 AND day_number <= 30",
            name="ck_plan_activity_day_number",
        ),
    )
    op.create_index(
        "ix_plan_activity_plan_day",
        "plan_activity",
        ["plan_id", "day_number"],
    )
    op.create_index("ix_plan_activity_attraction", "plan_activity", ["attraction_id"])

    op.create_table(
        "generation_errors",
        sa.Column("id", UUID_TYPE, primary_key=True),
        sa.Column(
            "plan_id",
            UUID_TYPE,
            sa.ForeignKey("plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("error_details", JSON_TYPE, nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_generation_errors_plan_id",
        "generation_errors",
        ["plan_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_generation_errors_plan_id", table_name="generation_errors")
    op.drop_table("generation_errors")
    op.drop_index("ix_plan_activity_attraction", table_name="plan_activity")
    op.drop_index("ix_plan_activity_plan_day", table_name="plan_activity")
    op.drop_table("plan_activity")
    op.drop_table("attractions")
    op.drop_index("ix_plans_created_at", table_name="plans")
    op.drop_index("ix_plans_user_id", table_name="plans")
    op.drop_table("plans")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
