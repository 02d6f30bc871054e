from __future__ import annotations

from datetime import date as dt_date
from datetime import datetime
from typing import Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from wanderplan.core.settings import settings
from wanderplan.models.orm import GenerationStatus, TravelStyle


class ORMBaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- auth ---


class RegisterRequest(BaseModel):
    email: EmailStr = Field(max_length=254)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: EmailStr = Field(max_length=254)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserSchema(ORMBaseSchema):
    id: str
    email: str
    created_at: datetime | None = None


class SessionSchema(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int


class AuthResponse(BaseModel):
    user: UserSchema
    session: SessionSchema


class RegisterResponse(BaseModel):
    message: str
    user: UserSchema


# --- generation ---


class GeneratePlanRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    destination: str = Field(min_length=1, max_length=255)
    start_date: dt_date
    end_date: dt_date
    adults_count: int = Field(ge=1, le=50)
    children_count: int = Field(ge=0, le=50)
    budget_total: float | None = Field(default=None, gt=0)
    budget_currency: str | None = Field(default=None, min_length=3, max_length=3)
    travel_style: TravelStyle | None = None

    @field_validator("name", "destination")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("budget_currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            msg = "Currency must be a 3-letter code"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_dates(self) -> "GeneratePlanRequest":
        if self.start_date >= self.end_date:
            msg = "start_date must be before end_date"
            raise ValueError(msg)
        if self.day_count > settings.plan_max_days:
            msg = f"plan cannot exceed {settings.plan_max_days} days"
            raise ValueError(msg)
        return self

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1


class GeneratePlanResponse(BaseModel):
    job_id: str
    status: Literal["processing"] = "processing"
    estimated_completion: datetime


class GenerationStatusResponse(BaseModel):
    """Status of one generation job; optional keys are omitted, never null."""

    job_id: str
    status: GenerationStatus
    progress: int = Field(ge=0, le=100)
    plan_id: str | None = None
    error_message: str | None = None

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# --- plans ---

PlanSortField = Literal["created_at", "name", "destination"]
SortOrder = Literal["asc", "desc"]


class PlanListParams(BaseModel):
    page: int = 1
    limit: int = 10
    sort: PlanSortField = "created_at"
    order: SortOrder = "desc"

    model_config = ConfigDict(extra="forbid")

    @field_validator("page", mode="after")
    @classmethod
    def clamp_page(cls, value: int) -> int:
        return max(1, value)

    @field_validator("limit", mode="after")
    @classmethod
    def clamp_limit(cls, value: int) -> int:
        return min(50, max(1, value))


class PlanListItem(ORMBaseSchema):
    id: str
    name: str
    destination: str
    start_date: dt_date
    end_date: dt_date
    adults_count: int
    children_count: int
    budget_total: float | None = None
    budget_currency: str | None = None
    travel_style: TravelStyle | None = None
    created_at: datetime
    job_id: str
    status: GenerationStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PlanListResponse(BaseModel):
    plans: list[PlanListItem]
    pagination: Pagination


class AttractionSchema(ORMBaseSchema):
    id: str
    name: str
    address: str
    description: str


class ActivitySchema(ORMBaseSchema):
    id: str
    attraction: AttractionSchema
    day_number: int
    activity_order: int
    accepted: bool | None = None
    custom_desc: str | None = None
    opening_hours: str | None = None
    cost: float | None = None


class PlanSummary(BaseModel):
    total_days: int
    total_activities: int
    accepted_activities: int
    estimated_total_cost: float


class PlanDetailResponse(PlanListItem):
    user_id: str
    activities: dict[int, list[ActivitySchema]] = Field(default_factory=dict)
    summary: PlanSummary


class MessageResponse(BaseModel):
    message: str


# --- activities ---


class UpdateActivityRequest(BaseModel):
    custom_desc: str | None = Field(default=None, max_length=1000)
    opening_hours: str | None = Field(default=None, max_length=255)
    cost: float | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def require_one_field(self) -> "UpdateActivityRequest":
        if not self.model_fields_set:
            msg = "at least one of custom_desc, opening_hours, cost is required"
            raise ValueError(msg)
        return self


class UpdateActivityResponse(BaseModel):
    id: str
    custom_desc: str | None = None
    opening_hours: str | None = None
    cost: float | None = None
    message: str


class ActivityToggleResponse(BaseModel):
    id: str
    accepted: bool
    message: str


__all__ = [
    "ActivitySchema",
    "ActivityToggleResponse",
    "AttractionSchema",
    "AuthResponse",
    "GeneratePlanRequest",
    "GeneratePlanResponse",
    "GenerationStatusResponse",
    "LoginRequest",
    "MessageResponse",
    "Pagination",
    "PlanDetailResponse",
    "PlanListItem",
    "PlanListParams",
    "PlanListResponse",
    "PlanSummary",
    "RegisterRequest",
    "RegisterResponse",
    "SessionSchema",
    "UpdateActivityRequest",
    "UpdateActivityResponse",
    "UserSchema",
]
