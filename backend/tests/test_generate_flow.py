from __future__ import annotations

import threading
import time
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from wanderplan.ai.client import reset_ai_client
from wanderplan.core.db import session_scope
from wanderplan.core.settings import settings
from wanderplan.models.orm import GenerationStatus, Plan
from wanderplan.models.schemas import GeneratePlanRequest
from wanderplan.services.generation_service import GenerationService
from wanderplan.services.generation_worker import GenerationWorker

from backend.tests.utils.factories import register_and_login


def _brief(**overrides) -> dict:
    payload = {
        "name": "Paris with kids",
        "destination": "Paris",
        "start_date": "2026-07-01",
        "end_date": "2026-07-03",
        "adults_count": 2,
        "children_count": 1,
        "budget_total": 2500,
        "budget_currency": "eur",
        "travel_style": "active",
    }
    payload.update(overrides)
    return payload


def _wait_for_terminal(client: TestClient, job_id: str, headers: dict) -> dict:
    deadline = time.monotonic() + 10
    while time.monotonic() < deadline:
        body = client.get(
            f"/api/plans/generate/{job_id}/status", headers=headers
        ).json()
        if body["status"] != "processing":
            return body
        time.sleep(0.05)
    raise AssertionError(f"job {job_id} did not finish")


def test_generate_returns_accepted_job(client, user):
    response = client.post(
        "/api/plans/generate", json=_brief(), headers=user["headers"]
    )

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "processing"
    assert len(body["job_id"]) == 36
    assert datetime.fromisoformat(body["estimated_completion"].replace("Z", "+00:00"))


def test_generated_plan_is_stored_with_activities(client, user):
    job_id = client.post(
        "/api/plans/generate", json=_brief(), headers=user["headers"]
    ).json()["job_id"]

    status = _wait_for_terminal(client, job_id, user["headers"])

    assert status["status"] == "completed"
    assert status["progress"] == 100
    detail = client.get(f"/api/plans/{status['plan_id']}", headers=user["headers"])
    assert detail.status_code == 200
    plan = detail.json()
    assert plan["budget_currency"] == "EUR"
    assert sorted(plan["activities"]) == ["1", "2", "3"]
    assert all(len(items) == 4 for items in plan["activities"].values())
    first = plan["activities"]["1"][0]
    assert first["attraction"]["name"] == "Arc de Triomphe"
    assert first["cost"] == 32.0
    assert first["accepted"] is None
    assert plan["summary"]["total_days"] == 3
    assert plan["summary"]["total_activities"] == 12
    assert plan["summary"]["accepted_activities"] == 0


def test_generation_failure_is_reported(client, user, monkeypatch):
    monkeypatch.setattr(settings, "ai_provider", "disabled")
    reset_ai_client()
    job_id = client.post(
        "/api/plans/generate", json=_brief(), headers=user["headers"]
    ).json()["job_id"]

    status = _wait_for_terminal(client, job_id, user["headers"])

    assert status["status"] == "failed"
    assert status["progress"] == 0
    assert status["error_message"].startswith("Plan generation failed")
    assert "plan_id" not in status


def test_processing_plans_are_recovered_on_start(app, monkeypatch):
    monkeypatch.setattr(settings, "generation_worker_enabled", False)
    with TestClient(app) as client:
        owner = register_and_login(client, "recover@example.com")
        job_id = client.post(
            "/api/plans/generate", json=_brief(), headers=owner["headers"]
        ).json()["job_id"]
        time.sleep(0.1)
        body = client.get(
            f"/api/plans/generate/{job_id}/status", headers=owner["headers"]
        ).json()
        assert body["status"] == "processing"

    monkeypatch.setattr(settings, "generation_worker_enabled", True)
    with TestClient(app) as client:
        status = _wait_for_terminal(client, job_id, owner["headers"])

    assert status["status"] == "completed"


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"destination": ""},
        {"start_date": "2026-07-03", "end_date": "2026-07-03"},
        {"start_date": "2026-07-05", "end_date": "2026-07-01"},
        {"start_date": "2026-07-01", "end_date": "2026-08-15"},
        {"adults_count": 0},
        {"children_count": -1},
        {"budget_total": 0},
        {"budget_currency": "EURO"},
        {"budget_currency": "E1R"},
        {"travel_style": "extreme"},
        {"start_date": "01/07/2026"},
    ],
)
def test_invalid_briefs_are_rejected(client, user, overrides):
    response = client.post(
        "/api/plans/generate", json=_brief(**overrides), headers=user["headers"]
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["data"]
    with session_scope() as session:
        assert session.query(Plan).count() == 0


def test_generate_requires_authentication(client):
    response = client.post("/api/plans/generate", json=_brief())

    assert response.status_code == 401


def test_plan_is_persisted_as_processing_when_worker_stopped(app, monkeypatch):
    monkeypatch.setattr(settings, "generation_worker_enabled", False)
    with TestClient(app) as client:
        owner = register_and_login(client, "idle@example.com")
        response = client.post(
            "/api/plans/generate", json=_brief(), headers=owner["headers"]
        )

    assert response.status_code == 202
    with session_scope() as session:
        plan = session.query(Plan).one()
        assert plan.status == GenerationStatus.PROCESSING
        assert plan.job_id == response.json()["job_id"]


@pytest.mark.asyncio
async def test_brief_is_stored_off_the_event_loop(user, monkeypatch):
    loop_thread = threading.current_thread()
    threads: list[threading.Thread] = []
    insert_plan = GenerationService._insert_plan

    def recording_insert(self, user_id, payload):
        threads.append(threading.current_thread())
        return insert_plan(self, user_id, payload)

    monkeypatch.setattr(GenerationService, "_insert_plan", recording_insert)
    service = GenerationService(worker=GenerationWorker())

    response = await service.create_generation(
        user["id"], GeneratePlanRequest(**_brief())
    )

    assert len(threads) == 1
    assert threads[0] is not loop_thread
    with session_scope() as session:
        plan = session.query(Plan).filter(Plan.job_id == response.job_id).one()
        assert plan.status == GenerationStatus.PROCESSING
        assert plan.user_id == user["id"]
