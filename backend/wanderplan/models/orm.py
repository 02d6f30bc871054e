from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wanderplan.models import Base

JSONType = sa.JSON().with_variant(
    postgresql.JSONB(astext_type=sa.Text()),
    "postgresql",
)
UUID_TYPE = sa.String(36)


def _new_uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationStatus(StrEnum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TravelStyle(StrEnum):
    ACTIVE = "active"
    RELAXATION = "relaxation"
    FLEXIBLE = "flexible"


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


GENERATION_STATUS_ENUM = sa.Enum(
    GenerationStatus,
    name="generation_status",
    native_enum=False,
    validate_strings=True,
    values_callable=_enum_values,
)
TRAVEL_STYLE_ENUM = sa.Enum(
    TravelStyle,
    name="travel_style",
    native_enum=False,
    validate_strings=True,
    values_callable=_enum_values,
)


class CreatedAtMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=sa.func.now(),
    )


class User(CreatedAtMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=_new_uuid)
    email: Mapped[str] = mapped_column(sa.String(254), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=True,
    )

    plans: Mapped[list["Plan"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Plan(CreatedAtMixin, Base):
    """Saved itinerary; also the row tracking its generation job."""

    __tablename__ = "plans"
    __table_args__ = (
        sa.CheckConstraint("adults_count >= 1", name="ck_plans_adults_count"),
        sa.CheckConstraint("children_count >= 0", name="ck_plans_children_count"),
        sa.Index("ix_plans_user_id", "user_id"),
        sa.Index("ix_plans_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=_new_uuid)
    user_id: Mapped[str] = mapped_column(
        UUID_TYPE,
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    destination: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    adults_count: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    children_count: Mapped[int] = mapped_column(
        sa.Integer,
        nullable=False,
        default=0,
        server_default=sa.text("0"),
    )
    budget_total: Mapped[Decimal | None] = mapped_column(
        sa.Numeric(12, 2), nullable=True
    )
    budget_currency: Mapped[str | None] = mapped_column(sa.String(3), nullable=True)
    travel_style: Mapped[TravelStyle | None] = mapped_column(
        TRAVEL_STYLE_ENUM,
        nullable=True,
    )
    job_id: Mapped[str] = mapped_column(
        UUID_TYPE,
        unique=True,
        nullable=False,
        default=_new_uuid,
    )
    status: Mapped[GenerationStatus] = mapped_column(
        GENERATION_STATUS_ENUM,
        nullable=False,
        default=GenerationStatus.PROCESSING,
    )

    user: Mapped["User"] = relationship(back_populates="plans")
    activities: Mapped[list["PlanActivity"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="[PlanActivity.day_number, PlanActivity.activity_order]",
    )
    generation_errors: Mapped[list["GenerationError"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="GenerationError.created_at",
    )

    @property
    def total_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


class Attraction(CreatedAtMixin, Base):
    __tablename__ = "attractions"
    __table_args__ = (
        sa.UniqueConstraint("name", "address", name="uq_attractions_name_address"),
    )

    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=_new_uuid)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    address: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    description: Mapped[str] = mapped_column(sa.String(1000), nullable=False)

    activities: Mapped[list["PlanActivity"]] = relationship(
        back_populates="attraction"
    )


class PlanActivity(CreatedAtMixin, Base):
    __tablename__ = "plan_activity"
    __table_args__ = (
        sa.CheckConstraint(
            "day_number >= 1 AND day_number <= 30",
            name="ck_plan_activity_day_number",
        ),
        sa.Index("ix_plan_activity_plan_day", "plan_id", "day_number"),
        sa.Index("ix_plan_activity_attraction", "attraction_id"),
    )

    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=_new_uuid)
    plan_id: Mapped[str] = mapped_column(
        UUID_TYPE,
        sa.ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    attraction_id: Mapped[str] = mapped_column(
        UUID_TYPE,
        sa.ForeignKey("attractions.id"),
        nullable=False,
    )
    day_number: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    activity_order: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    accepted: Mapped[bool | None] = mapped_column(sa.Boolean, nullable=True)
    custom_desc: Mapped[str | None] = mapped_column(sa.String(1000), nullable=True)
    opening_hours: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2), nullable=True)

    plan: Mapped["Plan"] = relationship(back_populates="activities")
    attraction: Mapped["Attraction"] = relationship(back_populates="activities")


class GenerationError(CreatedAtMixin, Base):
    __tablename__ = "generation_errors"
    __table_args__ = (sa.Index("ix_generation_errors_plan_id", "plan_id"),)

    id: Mapped[str] = mapped_column(UUID_TYPE, primary_key=True, default=_new_uuid)
    plan_id: Mapped[str] = mapped_column(
        UUID_TYPE,
        sa.ForeignKey("plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    error_message: Mapped[str] = mapped_column(sa.Text, nullable=False)
    error_details: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType, nullable=True
    )

    plan: Mapped["Plan"] = relationship(back_populates="generation_errors")


__all__ = [
    "Attraction",
    "GenerationError",
    "GenerationStatus",
    "Plan",
    "PlanActivity",
    "TravelStyle",
    "User",
]
