from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from anyio import to_thread
from sqlalchemy.exc import SQLAlchemyError

from wanderplan.core.db import session_scope
from wanderplan.core.logging import get_logger
from wanderplan.core.settings import settings
from wanderplan.models.orm import GenerationStatus, Plan
from wanderplan.models.schemas import (
    GeneratePlanRequest,
    GeneratePlanResponse,
    GenerationStatusResponse,
)
from wanderplan.repositories import PlanRepository
from wanderplan.services.generation_worker import (
    GENERIC_FAILURE_MESSAGE,
    GenerationWorker,
    get_generation_worker,
)
from wanderplan.utils.api_errors import classify_database_error
from wanderplan.utils.identifiers import require_uuid

MIN_PROCESSING_PROGRESS = 10
MAX_PROCESSING_PROGRESS = 95


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def estimate_progress(
    status: GenerationStatus,
    created_at: datetime,
    *,
    now: datetime,
    total_seconds: float,
) -> int:
    """Cosmetic progress for a job; never reaches 100 while processing."""

    if status == GenerationStatus.FAILED:
        return 0
    if status == GenerationStatus.COMPLETED:
        return 100

    started = _as_utc(created_at)
    estimated = started + timedelta(seconds=total_seconds)
    current = _as_utc(now)
    if total_seconds <= 0 or current >= estimated:
        return MAX_PROCESSING_PROGRESS
    elapsed = max((current - started).total_seconds(), 0.0)
    percent = elapsed / total_seconds * 100
    clamped = min(max(percent, MIN_PROCESSING_PROGRESS), MAX_PROCESSING_PROGRESS)
    return round(clamped)


class GenerationService:
    """Creates generation jobs and reports their status."""

    def __init__(
        self,
        *,
        worker: GenerationWorker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._worker = worker or get_generation_worker()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._logger = get_logger(__name__)

    async def create_generation(
        self,
        user_id: str,
        payload: GeneratePlanRequest,
    ) -> GeneratePlanResponse:
        """Store the brief off the event loop, then queue the job on it."""

        try:
            plan_id, job_id, created_at = await to_thread.run_sync(
                self._insert_plan, user_id, payload
            )
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc

        self._dispatch(plan_id)
        self._logger.info(
            "generation.created",
            extra={"plan_id": plan_id, "job_id": job_id, "user_id": user_id},
        )
        return GeneratePlanResponse(
            job_id=job_id,
            estimated_completion=created_at
            + timedelta(seconds=settings.generation_estimated_seconds),
        )

    def _insert_plan(
        self,
        user_id: str,
        payload: GeneratePlanRequest,
    ) -> tuple[str, str, datetime]:
        with session_scope() as session:
            plan = PlanRepository(session).add(
                Plan(
                    user_id=user_id,
                    name=payload.name,
                    destination=payload.destination,
                    start_date=payload.start_date,
                    end_date=payload.end_date,
                    adults_count=payload.adults_count,
                    children_count=payload.children_count,
                    budget_total=(
                        Decimal(str(payload.budget_total))
                        if payload.budget_total is not None
                        else None
                    ),
                    budget_currency=payload.budget_currency,
                    travel_style=payload.travel_style,
                    created_at=self._clock(),
                )
            )
            return plan.id, plan.job_id, _as_utc(plan.created_at)

    def get_status(
        self,
        user_id: str,
        job_id: str | None,
    ) -> GenerationStatusResponse | None:
        """Return the job owned by ``user_id`` or ``None`` when there is none."""

        normalized = require_uuid(
            job_id,
            name="job_id",
            code="INVALID_JOB_ID",
            label="job",
        )
        try:
            with session_scope() as session:
                repo = PlanRepository(session)
                plan = repo.get_by_job_id(normalized, user_id)
                if plan is None:
                    return None
                response = GenerationStatusResponse(
                    job_id=plan.job_id,
                    status=plan.status,
                    progress=estimate_progress(
                        plan.status,
                        plan.created_at,
                        now=self._clock(),
                        total_seconds=settings.generation_estimated_seconds,
                    ),
                )
                if plan.status == GenerationStatus.COMPLETED:
                    response.plan_id = plan.id
                elif plan.status == GenerationStatus.FAILED:
                    error = repo.latest_error(plan.id)
                    response.error_message = (
                        error.error_message if error else GENERIC_FAILURE_MESSAGE
                    )
                return response
        except SQLAlchemyError as exc:
            self._logger.warning(
                "generation.status_db_error",
                extra={"job_id": normalized, "error": str(exc)},
            )
            raise classify_database_error(exc) from exc

    def _dispatch(self, plan_id: str) -> None:
        if not self._worker.started:
            # picked up by recovery on the next worker start
            self._logger.warning(
                "generation.worker_not_started",
                extra={"plan_id": plan_id, "reason": self._worker.disabled_reason},
            )
            return
        try:
            self._worker.enqueue(plan_id)
        except asyncio.QueueFull:
            self._logger.warning("generation.queue_full", extra={"plan_id": plan_id})


def get_generation_service() -> GenerationService:
    return GenerationService()
