from __future__ import annotations

from wanderplan.ai.models import AiGenerationRequest

SYSTEM_PROMPT = (
    "You are a travel planner. Answer with a single JSON object and nothing "
    "else. Every activity needs a name, description, address, opening hours "
    "and an estimated cost."
)

TRAVEL_STYLE_DESCRIPTIONS = {
    "active": "Active: intensive sightseeing, lots of movement",
    "relaxation": "Relaxation: calm pace with time to rest",
    "flexible": "Flexible: balanced pace",
}

RESPONSE_SHAPE = """{
  "days": [
    {
      "day_number": 1,
      "activities": [
        {
          "name": "Attraction name",
          "description": "Detailed description",
          "address": "Full address",
          "opening_hours": "09:00-18:00",
          "cost": 25,
          "activity_order": 1
        }
      ]
    }
  ]
}"""


def build_travel_plan_prompt(request: AiGenerationRequest) -> str:
    currency = request.budget_currency or "EUR"
    lines = [
        "Create a detailed day-by-day travel plan for:",
        "",
        f"- Destination: {request.destination}",
        f"- Dates: {request.start_date.isoformat()} - {request.end_date.isoformat()}"
        f" ({request.day_count} days)",
        f"- Travellers: {request.adults_count} adults, {request.children_count} children",
    ]
    if request.budget_total:
        lines.append(f"- Budget: {request.budget_total:g} {currency}")
    if request.travel_style:
        style = TRAVEL_STYLE_DESCRIPTIONS.get(request.travel_style, "Standard")
        lines.append(f"- Travel style: {style}")
    lines += [
        "",
        "Requirements:",
        "- plan every day separately, day_number starting at 1",
        "- respect the opening hours of attractions",
        f"- give estimated costs in {currency}",
        "- order visits so that nearby places follow each other",
        "- take children into account when there are any",
        "",
        "Return JSON shaped as:",
        RESPONSE_SHAPE,
    ]
    return "\n".join(lines)
