from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from wanderplan.ai import AiActivity, AiClientError, AiDay, AiTravelPlan
from wanderplan.core.db import session_scope
from wanderplan.core.settings import settings
from wanderplan.models.orm import GenerationStatus, Plan
from wanderplan.repositories import PlanRepository
from wanderplan.services.generation_worker import (
    GENERIC_FAILURE_MESSAGE,
    UNAVAILABLE_MESSAGE,
    GenerationWorker,
)


class FakeAiClient:
    def __init__(self, result: AiTravelPlan | Exception) -> None:
        self._result = result
        self.requests = []

    async def generate_travel_plan(self, request):
        self.requests.append(request)
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _activity(name: str, order: int, cost: float | None = 10.5) -> AiActivity:
    return AiActivity(
        name=name,
        description=f"{name} description",
        address=f"{name} street 1",
        cost=cost,
        activity_order=order,
    )


def _load(plan_id: str) -> tuple[GenerationStatus, int, str | None]:
    with session_scope() as session:
        repo = PlanRepository(session)
        plan: Plan = repo.get(plan_id)
        error = repo.latest_error(plan_id)
        return (
            plan.status,
            len(plan.activities),
            error.error_message if error else None,
        )


@pytest.mark.asyncio
async def test_run_job_stores_days_within_plan_range(user, plan_factory):
    plan = plan_factory(user["id"], days=2)
    travel_plan = AiTravelPlan(
        days=[
            AiDay(day_number=1, activities=[_activity("Museum", 1)]),
            AiDay(
                day_number=2,
                activities=[_activity("Park", 1, None), _activity("Museum", 2)],
            ),
            AiDay(day_number=3, activities=[_activity("Harbour", 1)]),
        ]
    )
    fake = FakeAiClient(travel_plan)

    await GenerationWorker(ai_client=fake).run_job(plan["id"])

    status, activity_count, error = _load(plan["id"])
    assert status == GenerationStatus.COMPLETED
    assert activity_count == 3
    assert error is None
    assert fake.requests[0].day_count == 2
    assert fake.requests[0].destination == "Paris"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error_type", "expected"),
    [
        ("provider_unavailable", UNAVAILABLE_MESSAGE),
        ("timeout", UNAVAILABLE_MESSAGE),
        ("circuit_open", UNAVAILABLE_MESSAGE),
        ("invalid_output", f"{GENERIC_FAILURE_MESSAGE}: bad plan"),
    ],
)
async def test_run_job_records_ai_failures(user, plan_factory, error_type, expected):
    plan = plan_factory(user["id"])
    fake = FakeAiClient(AiClientError(error_type, "bad plan"))

    await GenerationWorker(ai_client=fake).run_job(plan["id"])

    assert _load(plan["id"]) == (GenerationStatus.FAILED, 0, expected)


@pytest.mark.asyncio
async def test_run_job_records_unexpected_crash(user, plan_factory):
    plan = plan_factory(user["id"])
    fake = FakeAiClient(RuntimeError("boom"))

    await GenerationWorker(ai_client=fake).run_job(plan["id"])

    assert _load(plan["id"]) == (GenerationStatus.FAILED, 0, GENERIC_FAILURE_MESSAGE)


@pytest.mark.asyncio
async def test_run_job_skips_plans_that_are_no_longer_processing(user, plan_factory):
    plan = plan_factory(user["id"], status=GenerationStatus.COMPLETED)
    fake = FakeAiClient(AiTravelPlan(days=[]))

    await GenerationWorker(ai_client=fake).run_job(plan["id"])

    assert fake.requests == []
    assert _load(plan["id"]) == (GenerationStatus.COMPLETED, 0, None)


@pytest.mark.asyncio
async def test_start_recovers_processing_plans(user, plan_factory):
    pending = plan_factory(user["id"])
    plan_factory(user["id"], status=GenerationStatus.FAILED)
    worker = GenerationWorker(ai_client=FakeAiClient(AiClientError("timeout", "t")))

    await worker.start()
    try:
        await worker.join()
    finally:
        await worker.stop()

    assert worker.started is False
    assert _load(pending["id"])[0] == GenerationStatus.FAILED


@pytest.mark.asyncio
async def test_worker_loop_survives_failed_bookkeeping(
    user, plan_factory, monkeypatch
):
    monkeypatch.setattr(settings, "generation_worker_concurrency", 1)
    mark_failed = GenerationWorker._mark_failed
    calls: list[str] = []

    def flaky_mark_failed(plan_id, *, message, details):
        calls.append(plan_id)
        if len(calls) == 1:
            raise OperationalError("UPDATE plans", {}, Exception("database is locked"))
        mark_failed(plan_id, message=message, details=details)

    monkeypatch.setattr(
        GenerationWorker, "_mark_failed", staticmethod(flaky_mark_failed)
    )
    worker = GenerationWorker(ai_client=FakeAiClient(AiClientError("timeout", "t")))

    await worker.start()
    try:
        first = plan_factory(user["id"])
        worker.enqueue(first["id"])
        await worker.join()
        assert worker.alive_workers == 1

        second = plan_factory(user["id"])
        worker.enqueue(second["id"])
        await worker.join()
    finally:
        await worker.stop()

    assert calls == [first["id"], second["id"]]
    assert _load(first["id"]) == (GenerationStatus.PROCESSING, 0, None)
    assert _load(second["id"]) == (GenerationStatus.FAILED, 0, UNAVAILABLE_MESSAGE)
