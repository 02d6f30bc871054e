from __future__ import annotations

from decimal import Decimal

import pytest

from wanderplan.core.db import session_scope
from wanderplan.models.orm import Attraction, GenerationStatus, PlanActivity

MISSING_ACTIVITY = "0f8e7d6c-5b4a-4392-8170-6f5e4d3c2b1a"


@pytest.fixture()
def activity(user, plan_factory) -> dict:
    plan = plan_factory(user["id"], status=GenerationStatus.COMPLETED)
    with session_scope() as session:
        attraction = Attraction(
            name="Louvre", address="Rue de Rivoli", description="Art"
        )
        session.add(attraction)
        session.flush()
        row = PlanActivity(
            plan_id=plan["id"],
            attraction_id=attraction.id,
            day_number=1,
            activity_order=1,
            cost=Decimal("17.00"),
        )
        session.add(row)
        session.flush()
        return {"plan_id": plan["id"], "id": row.id}


def _url(activity: dict, suffix: str = "") -> str:
    return f"/api/plans/{activity['plan_id']}/activities/{activity['id']}{suffix}"


def _load(activity_id: str) -> PlanActivity:
    with session_scope() as session:
        return session.get(PlanActivity, activity_id)


def test_update_activity_fields(client, user, activity):
    response = client.put(
        _url(activity),
        json={"custom_desc": "Skip the queue", "cost": 0},
        headers=user["headers"],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == activity["id"]
    assert body["custom_desc"] == "Skip the queue"
    assert body["cost"] == 0
    assert body["message"] == "Activity updated successfully"
    stored = _load(activity["id"])
    assert stored.custom_desc == "Skip the queue"
    assert float(stored.cost) == 0


def test_update_activity_can_clear_field(client, user, activity):
    client.put(
        _url(activity), json={"opening_hours": "09:00-18:00"}, headers=user["headers"]
    )

    response = client.put(
        _url(activity), json={"opening_hours": None}, headers=user["headers"]
    )

    assert response.status_code == 200
    assert _load(activity["id"]).opening_hours is None


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"accepted": True},
        {"cost": -1},
        {"custom_desc": "x" * 1001},
        {"opening_hours": "y" * 256},
    ],
)
def test_update_activity_rejects_invalid_payload(client, user, activity, payload):
    response = client.put(_url(activity), json=payload, headers=user["headers"])

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_accept_and_reject_activity(client, user, activity):
    accepted = client.post(_url(activity, "/accept"), headers=user["headers"])
    assert accepted.status_code == 200
    assert accepted.json() == {
        "id": activity["id"],
        "accepted": True,
        "message": "Activity accepted successfully",
    }
    assert _load(activity["id"]).accepted is True

    rejected = client.post(_url(activity, "/reject"), headers=user["headers"])
    assert rejected.json()["accepted"] is False
    assert _load(activity["id"]).accepted is False


def test_activity_of_other_users_plan_is_not_found(client, other_user, activity):
    response = client.post(_url(activity, "/accept"), headers=other_user["headers"])

    assert response.status_code == 404
    assert response.json()["code"] == "PLAN_NOT_FOUND"


def test_activity_outside_plan_is_not_found(client, user, activity):
    response = client.put(
        f"/api/plans/{activity['plan_id']}/activities/{MISSING_ACTIVITY}",
        json={"cost": 5},
        headers=user["headers"],
    )

    assert response.status_code == 404
    assert response.json()["code"] == "ACTIVITY_NOT_FOUND"


def test_activity_with_malformed_id_is_rejected(client, user, activity):
    response = client.post(
        f"/api/plans/{activity['plan_id']}/activities/nope/reject",
        headers=user["headers"],
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ACTIVITY_ID"
