from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator


class AiGenerationRequest(BaseModel):
    destination: str
    start_date: date
    end_date: date
    adults_count: int = Field(ge=1)
    children_count: int = Field(default=0, ge=0)
    budget_total: float | None = None
    budget_currency: str | None = None
    travel_style: str | None = None

    @property
    def day_count(self) -> int:
        return (self.end_date - self.start_date).days + 1


class AiActivity(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=1000)
    address: str = Field(default="", max_length=255)
    opening_hours: str | None = Field(default=None, max_length=255)
    cost: float | None = Field(default=None, ge=0)
    activity_order: int = Field(ge=1)

    @field_validator("name", "description", "address", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class AiDay(BaseModel):
    day_number: int = Field(ge=1)
    activities: list[AiActivity] = Field(default_factory=list)


class AiTravelPlan(BaseModel):
    days: list[AiDay] = Field(default_factory=list)

    @property
    def activity_count(self) -> int:
        return sum(len(day.activities) for day in self.days)
