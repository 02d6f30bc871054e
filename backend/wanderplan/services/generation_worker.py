from __future__ import annotations

import asyncio
from decimal import Decimal
from functools import partial
from typing import Any

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError

from wanderplan.ai import (
    AiClient,
    AiClientError,
    AiGenerationRequest,
    AiTravelPlan,
    get_ai_client,
)
from wanderplan.core.db import session_scope
from wanderplan.core.logging import get_logger
from wanderplan.core.settings import settings
from wanderplan.models.orm import GenerationStatus, Plan, PlanActivity
from wanderplan.repositories import ActivityRepository, PlanRepository

UNAVAILABLE_MESSAGE = "AI service temporarily unavailable"
GENERIC_FAILURE_MESSAGE = "Plan generation failed"


class GenerationWorker:
    """In-process async worker turning processing plans into itineraries."""

    def __init__(self, ai_client: AiClient | None = None) -> None:
        self._queue: asyncio.Queue[str] | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._ai_client = ai_client
        self._logger = get_logger(__name__)
        self._started = False
        self._disabled_reason: str | None = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._started

    @property
    def disabled_reason(self) -> str | None:
        return self._disabled_reason

    @property
    def alive_workers(self) -> int:
        return sum(1 for task in self._workers if not task.done())

    async def start(self) -> None:
        async with self._lock:
            if self._started:
                return

            self._disabled_reason = None
            maxsize = max(int(settings.generation_queue_maxsize), 1)
            self._queue = asyncio.Queue(maxsize=maxsize)
            try:
                await self._recover_jobs()
            except SQLAlchemyError as exc:
                self._disabled_reason = str(exc)
                self._queue = None
                self._logger.warning(
                    "generation_worker.disabled",
                    extra={"error": str(exc)},
                )
                return

            concurrency = max(int(settings.generation_worker_concurrency), 1)
            for idx in range(concurrency):
                self._workers.append(asyncio.create_task(self._worker_loop(idx)))

            self._started = True
            self._logger.info(
                "generation_worker.started",
                extra={"concurrency": concurrency, "queue_maxsize": maxsize},
            )

    async def stop(self) -> None:
        async with self._lock:
            if not self._started:
                return
            for task in self._workers:
                task.cancel()
            await asyncio.gather(*self._workers, return_exceptions=True)
            self._workers.clear()
            self._queue = None
            self._started = False
            self._logger.info("generation_worker.stopped")

    def enqueue(self, plan_id: str) -> None:
        if not self._queue:
            raise RuntimeError("worker queue is not initialized")
        self._queue.put_nowait(str(plan_id))

    async def join(self) -> None:
        """Wait until every queued job has been handled."""
        if self._queue is not None:
            await self._queue.join()

    async def _recover_jobs(self) -> None:
        if not self._queue:
            return

        with session_scope() as session:
            plan_ids = PlanRepository(session).list_processing_ids()

        for plan_id in plan_ids:
            try:
                self.enqueue(plan_id)
            except asyncio.QueueFull:
                self._logger.warning(
                    "generation_worker.recover_queue_full",
                    extra={"plan_id": plan_id, "pending": len(plan_ids)},
                )
                break
        if plan_ids:
            self._logger.info(
                "generation_worker.recovered",
                extra={"count": len(plan_ids)},
            )

    async def _worker_loop(self, worker_index: int) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            plan_id = await queue.get()
            try:
                await self.run_job(plan_id, worker_index=worker_index)
            except Exception:
                # the job stays processing and is retried by recovery on restart
                self._logger.exception(
                    "generation_worker.loop_error",
                    extra={"plan_id": plan_id, "worker": worker_index},
                )
            finally:
                queue.task_done()

    async def run_job(self, plan_id: str, *, worker_index: int = 0) -> None:
        request = await to_thread.run_sync(self._load_request, plan_id)
        if request is None:
            return

        client = self._ai_client or get_ai_client()
        try:
            travel_plan = await client.generate_travel_plan(request)
            stored = await to_thread.run_sync(
                self._store_itinerary, plan_id, travel_plan
            )
            self._logger.info(
                "generation_worker.succeeded",
                extra={
                    "plan_id": plan_id,
                    "worker": worker_index,
                    "activities": stored,
                },
            )
        except AiClientError as exc:
            message = (
                UNAVAILABLE_MESSAGE
                if exc.transient
                else f"{GENERIC_FAILURE_MESSAGE}: {exc.message}"
            )
            await self._record_failure(plan_id, message, exc.to_dict())
            self._logger.warning(
                "generation_worker.failed",
                extra={
                    "plan_id": plan_id,
                    "worker": worker_index,
                    "error_type": exc.type,
                    "error": exc.message,
                },
            )
        except Exception as exc:
            await self._record_failure(
                plan_id,
                GENERIC_FAILURE_MESSAGE,
                {"type": exc.__class__.__name__, "message": str(exc)[:500]},
            )
            self._logger.exception(
                "generation_worker.crash",
                extra={"plan_id": plan_id, "worker": worker_index},
            )

    async def _record_failure(
        self, plan_id: str, message: str, details: dict[str, Any]
    ) -> None:
        await to_thread.run_sync(
            partial(self._mark_failed, plan_id, message=message, details=details)
        )

    @staticmethod
    def _load_request(plan_id: str) -> AiGenerationRequest | None:
        with session_scope() as session:
            plan: Plan | None = PlanRepository(session).get(plan_id)
            if plan is None or plan.status != GenerationStatus.PROCESSING:
                return None
            return AiGenerationRequest(
                destination=plan.destination,
                start_date=plan.start_date,
                end_date=plan.end_date,
                adults_count=plan.adults_count,
                children_count=plan.children_count,
                budget_total=float(plan.budget_total) if plan.budget_total else None,
                budget_currency=plan.budget_currency,
                travel_style=plan.travel_style.value if plan.travel_style else None,
            )

    def _store_itinerary(self, plan_id: str, travel_plan: AiTravelPlan) -> int:
        """Persist generated activities and complete the plan; returns the count."""

        with session_scope() as session:
            plan = PlanRepository(session).get(plan_id)
            if plan is None or plan.status != GenerationStatus.PROCESSING:
                return 0
            repo = ActivityRepository(session)
            total_days = plan.total_days
            activities: list[PlanActivity] = []
            for day in travel_plan.days:
                if not 1 <= day.day_number <= total_days:
                    self._logger.warning(
                        "generation_worker.day_out_of_range",
                        extra={"plan_id": plan_id, "day_number": day.day_number},
                    )
                    continue
                for item in day.activities:
                    attraction = repo.upsert_attraction(
                        name=item.name,
                        address=item.address,
                        description=item.description,
                    )
                    activities.append(
                        PlanActivity(
                            plan_id=plan.id,
                            attraction_id=attraction.id,
                            day_number=day.day_number,
                            activity_order=item.activity_order,
                            opening_hours=item.opening_hours,
                            cost=(
                                Decimal(str(item.cost))
                                if item.cost is not None
                                else None
                            ),
                        )
                    )
            repo.add_many(activities)
            plan.status = GenerationStatus.COMPLETED
            return len(activities)

    @staticmethod
    def _mark_failed(
        plan_id: str,
        *,
        message: str,
        details: dict[str, Any],
    ) -> None:
        with session_scope() as session:
            repo = PlanRepository(session)
            plan = repo.get(plan_id)
            if plan is None or plan.status != GenerationStatus.PROCESSING:
                return
            repo.add_error(plan_id, message=message, details=details)
            plan.status = GenerationStatus.FAILED


_generation_worker: GenerationWorker | None = None


def get_generation_worker() -> GenerationWorker:
    global _generation_worker
    if _generation_worker is None:
        _generation_worker = GenerationWorker()
    return _generation_worker


def reset_generation_worker() -> None:
    global _generation_worker
    _generation_worker = None
