from __future__ import annotations

import asyncio

import httpx
import pytest

from wanderplan.client import GenerationStatusPoller, PollerError, StatusSnapshot

JOB_ID = "123e4567-e89b-12d3-a456-426614174000"
PLAN_ID = "123e4567-e89b-12d3-a456-426614174999"


def _status(status: str, progress: int, **extra) -> httpx.Response:
    return httpx.Response(
        200, json={"job_id": JOB_ID, "status": status, "progress": progress, **extra}
    )


def _scripted_client(responses: list) -> tuple[httpx.AsyncClient, list[str]]:
    calls: list[str] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(f"{request.method} {request.url.path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    client = httpx.AsyncClient(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )
    return client, calls


@pytest.mark.asyncio
async def test_poller_stops_on_completion_and_reports_updates():
    client, calls = _scripted_client(
        [
            _status("processing", 10),
            _status("processing", 40),
            _status("completed", 100, plan_id=PLAN_ID),
        ]
    )
    updates: list[StatusSnapshot] = []

    async with client, GenerationStatusPoller(
        client, interval=0, on_update=updates.append
    ) as poller:
        poller.start(JOB_ID)
        result = await poller.wait()

    assert result.completed
    assert result.last_status.plan_id == PLAN_ID
    assert [snapshot.progress for snapshot in updates] == [10, 40, 100]
    assert calls == [f"GET /api/plans/generate/{JOB_ID}/status"] * 3
    assert poller.finished


@pytest.mark.asyncio
async def test_poller_reports_failure_message():
    client, _ = _scripted_client(
        [_status("failed", 0, error_message="AI service temporarily unavailable")]
    )

    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        poller.start(JOB_ID)
        result = await poller.wait()

    assert not result.completed
    assert result.last_status.error_message == "AI service temporarily unavailable"


@pytest.mark.asyncio
async def test_poller_retries_unavailable_and_transport_errors():
    client, calls = _scripted_client(
        [
            httpx.Response(503, json={"code": "NETWORK_ERROR", "msg": "down"}),
            httpx.ConnectError("refused"),
            _status("completed", 100, plan_id=PLAN_ID),
        ]
    )

    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        poller.start(JOB_ID)
        result = await poller.wait()

    assert result.completed
    assert len(calls) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(404, json=None), "Generation job not found"),
        (
            httpx.Response(401, json={"code": "UNAUTHORIZED", "msg": "Auth required"}),
            "Auth required",
        ),
        (httpx.Response(500, text="oops"), "Request failed with status 500"),
    ],
)
async def test_poller_stops_on_other_errors(response, message):
    client, calls = _scripted_client([response])

    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        poller.start(JOB_ID)
        result = await poller.wait()

    assert result.error == message
    assert result.http_status == response.status_code
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_poller_times_out():
    client, calls = _scripted_client([_status("processing", 10)])

    async with client:
        poller = GenerationStatusPoller(client, interval=0.01, timeout=0.05)
        poller.start(JOB_ID)
        result = await poller.wait()

    assert result.timed_out
    assert result.last_status.status == "processing"
    assert len(calls) >= 2
    assert not poller.finished


@pytest.mark.asyncio
async def test_poller_cancel_stops_task():
    client, _ = _scripted_client([_status("processing", 10)])

    async with client:
        poller = GenerationStatusPoller(client, interval=60)
        task = poller.start(JOB_ID)
        await asyncio.sleep(0)
        await poller.aclose()

    assert task.cancelled()
    assert not poller.running


@pytest.mark.asyncio
async def test_poller_cannot_restart_after_terminal_state():
    client, _ = _scripted_client([_status("completed", 100, plan_id=PLAN_ID)])

    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        poller.start(JOB_ID)
        await poller.wait()

        with pytest.raises(PollerError):
            poller.start(JOB_ID)


@pytest.mark.asyncio
async def test_submit_posts_brief_and_starts_polling():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        if request.method == "POST":
            return httpx.Response(
                202,
                json={
                    "job_id": JOB_ID,
                    "status": "processing",
                    "estimated_completion": "2026-03-01T12:05:00Z",
                },
            )
        return _status("completed", 100, plan_id=PLAN_ID)

    client = httpx.AsyncClient(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )
    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        job_id = await poller.submit({"name": "Trip"})
        result = await poller.wait()

    assert job_id == JOB_ID
    assert result.completed
    assert seen == ["POST", "GET"]


@pytest.mark.asyncio
async def test_submit_raises_on_rejected_brief():
    client, _ = _scripted_client(
        [httpx.Response(400, json={"code": "VALIDATION_ERROR", "msg": "Invalid"})]
    )

    async with client:
        poller = GenerationStatusPoller(client, interval=0)
        with pytest.raises(PollerError) as exc_info:
            await poller.submit({})

    assert exc_info.value.status_code == 400
    assert not poller.running
