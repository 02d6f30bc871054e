"""Client side of the generation-status protocol.

``GenerationStatusPoller`` submits a trip brief and polls
``GET /api/plans/generate/{job_id}/status`` from an ``asyncio.Task`` it owns
until the job reaches a terminal state, the timeout elapses or the poller is
cancelled.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx

from wanderplan.core.logging import get_logger

TERMINAL_STATUSES = frozenset({"completed", "failed"})
RETRYABLE_STATUS_CODES = frozenset({503})

StatusCallback = Callable[["StatusSnapshot"], Awaitable[None] | None]


class PollerError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    job_id: str
    status: str
    progress: int
    plan_id: str | None = None
    error_message: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "StatusSnapshot":
        return cls(
            job_id=str(payload["job_id"]),
            status=str(payload["status"]),
            progress=int(payload.get("progress", 0)),
            plan_id=payload.get("plan_id"),
            error_message=payload.get("error_message"),
        )

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True, slots=True)
class PollResult:
    job_id: str
    last_status: StatusSnapshot | None
    timed_out: bool = False
    error: str | None = None
    http_status: int | None = None

    @property
    def completed(self) -> bool:
        return self.last_status is not None and self.last_status.status == "completed"


def _error_message(response: httpx.Response) -> str:
    if response.status_code == 404:
        return "Generation job not found"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("msg"):
        return str(payload["msg"])
    return f"Request failed with status {response.status_code}"


class GenerationStatusPoller:
    """Poll a generation job until it settles.

    ``client`` must already carry the base URL and credentials. Use it as an
    async context manager so the polling task is cancelled on exit.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        interval: float = 5.0,
        timeout: float | None = 600.0,
        on_update: StatusCallback | None = None,
    ) -> None:
        self._client = client
        self.interval = max(float(interval), 0.0)
        self.timeout = timeout
        self._on_update = on_update
        self._task: asyncio.Task[PollResult] | None = None
        self._finished = False
        self._logger = get_logger(__name__)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def finished(self) -> bool:
        return self._finished

    async def submit(self, brief: dict[str, Any]) -> str:
        """Request generation for ``brief`` and start polling the new job."""

        response = await self._client.post("/api/plans/generate", json=brief)
        if response.status_code != 202:
            raise PollerError(
                _error_message(response),
                status_code=response.status_code,
            )
        job_id = str(response.json()["job_id"])
        self.start(job_id)
        return job_id

    def start(self, job_id: str) -> asyncio.Task[PollResult]:
        if self._finished:
            raise PollerError("poller already observed a terminal state")
        if self.running:
            raise PollerError("poller is already running")
        self._task = asyncio.create_task(self._run(job_id))
        return self._task

    async def wait(self) -> PollResult:
        if self._task is None:
            raise PollerError("poller was not started")
        return await self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aclose(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "GenerationStatusPoller":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _run(self, job_id: str) -> PollResult:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout if self.timeout is not None else None
        path = f"/api/plans/generate/{job_id}/status"
        last: StatusSnapshot | None = None

        while True:
            try:
                response = await self._client.get(path)
            except httpx.TransportError as exc:
                self._logger.warning(
                    "poller.transport_error",
                    extra={"job_id": job_id, "error": str(exc)},
                )
            else:
                if response.status_code == 200:
                    last = StatusSnapshot.from_payload(response.json())
                    await self._notify(last)
                    if last.terminal:
                        self._finished = True
                        return PollResult(job_id=job_id, last_status=last)
                elif response.status_code in RETRYABLE_STATUS_CODES:
                    self._logger.info(
                        "poller.retry",
                        extra={"job_id": job_id, "status_code": response.status_code},
                    )
                else:
                    self._finished = True
                    return PollResult(
                        job_id=job_id,
                        last_status=last,
                        error=_error_message(response),
                        http_status=response.status_code,
                    )

            await asyncio.sleep(self.interval)
            if deadline is not None and loop.time() >= deadline:
                self._logger.info("poller.timed_out", extra={"job_id": job_id})
                return PollResult(job_id=job_id, last_status=last, timed_out=True)

    async def _notify(self, snapshot: StatusSnapshot) -> None:
        if self._on_update is None:
            return
        maybe_awaitable = self._on_update(snapshot)
        if inspect.isawaitable(maybe_awaitable):
            await maybe_awaitable
