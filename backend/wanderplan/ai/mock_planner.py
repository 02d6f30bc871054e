"""Deterministic itinerary generator used by the ``mock`` provider."""

from __future__ import annotations

import math
from dataclasses import dataclass

from wanderplan.ai.models import AiActivity, AiDay, AiGenerationRequest, AiTravelPlan


@dataclass(frozen=True, slots=True)
class MockAttraction:
    name: str
    description: str
    address: str
    opening_hours: str
    base_cost: int


PARIS = (
    MockAttraction(
        "Eiffel Tower",
        "Iconic 324 metre iron tower, the symbol of Paris",
        "Champ de Mars, 5 Avenue Anatole France, 75007 Paris",
        "09:00-23:45",
        26,
    ),
    MockAttraction(
        "Louvre",
        "The largest art museum in the world with over 35,000 works",
        "Rue de Rivoli, 75001 Paris",
        "09:00-18:00",
        17,
    ),
    MockAttraction(
        "Arc de Triomphe",
        "Monumental arch commemorating Napoleon's victories",
        "Place Charles de Gaulle, 75008 Paris",
        "10:00-23:00",
        13,
    ),
    MockAttraction(
        "Notre-Dame Cathedral",
        "Medieval gothic cathedral, a masterpiece of architecture",
        "6 Parvis Notre-Dame - Pl. Jean-Paul II, 75004 Paris",
        "08:00-18:45",
        0,
    ),
)

ROME = (
    MockAttraction(
        "Colosseum",
        "Ancient amphitheatre, symbol of the Roman Empire",
        "Piazza del Colosseo, 1, 00184 Roma RM, Italy",
        "08:30-19:00",
        16,
    ),
    MockAttraction(
        "Vatican",
        "The smallest state in the world and seat of the Pope",
        "Vatican City",
        "07:00-18:00",
        0,
    ),
    MockAttraction(
        "Trevi Fountain",
        "Baroque fountain, one of the most beautiful places in Rome",
        "Piazza di Trevi, 00187 Roma RM, Italy",
        "24/7",
        0,
    ),
)

DEFAULT = (
    MockAttraction(
        "City Museum",
        "Museum presenting the history and culture of the region",
        "1 Main Street, City Centre",
        "10:00-18:00",
        15,
    ),
    MockAttraction(
        "City Park",
        "Quiet park, ideal for a walk and some rest",
        "5 Park Lane, City Centre",
        "06:00-22:00",
        0,
    ),
    MockAttraction(
        "Regional Restaurant",
        "Local restaurant serving traditional dishes",
        "10 Market Square, City Centre",
        "12:00-22:00",
        25,
    ),
)

DESTINATION_ALIASES = {
    "paris": PARIS,
    "paryż": PARIS,
    "rome": ROME,
    "roma": ROME,
    "rzym": ROME,
}

ACTIVITIES_PER_STYLE = {"active": 4, "relaxation": 2}
DEFAULT_ACTIVITIES_PER_DAY = 3


def attractions_for(destination: str) -> tuple[MockAttraction, ...]:
    lowered = destination.lower()
    for alias, attractions in DESTINATION_ALIASES.items():
        if alias in lowered:
            return attractions
    return DEFAULT


def activities_per_day(travel_style: str | None) -> int:
    return ACTIVITIES_PER_STYLE.get(travel_style or "", DEFAULT_ACTIVITIES_PER_DAY)


def estimate_cost(base_cost: int, adults: int, children: int) -> int:
    """Adults pay the full price, children half, rounded down."""
    return base_cost * adults + math.floor(base_cost * 0.5 * children)


def build_mock_plan(request: AiGenerationRequest) -> AiTravelPlan:
    attractions = attractions_for(request.destination)
    per_day = activities_per_day(request.travel_style)
    days: list[AiDay] = []
    for day_number in range(1, request.day_count + 1):
        activities = []
        for order in range(1, per_day + 1):
            attraction = attractions[(day_number + order) % len(attractions)]
            activities.append(
                AiActivity(
                    name=attraction.name,
                    description=attraction.description,
                    address=attraction.address,
                    opening_hours=attraction.opening_hours,
                    cost=estimate_cost(
                        attraction.base_cost,
                        request.adults_count,
                        request.children_count,
                    ),
                    activity_order=order,
                )
            )
        days.append(AiDay(day_number=day_number, activities=activities))
    return AiTravelPlan(days=days)
