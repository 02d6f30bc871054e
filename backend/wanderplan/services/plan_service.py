from __future__ import annotations

import math
from collections import defaultdict
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError

from wanderplan.core.db import session_scope
from wanderplan.core.logging import get_logger
from wanderplan.models.orm import Plan, PlanActivity
from wanderplan.models.schemas import (
    ActivitySchema,
    ActivityToggleResponse,
    Pagination,
    PlanDetailResponse,
    PlanListItem,
    PlanListParams,
    PlanListResponse,
    PlanSummary,
    UpdateActivityRequest,
    UpdateActivityResponse,
)
from wanderplan.repositories import ActivityRepository, PlanRepository
from wanderplan.utils.api_errors import NotFoundFailure, classify_database_error
from wanderplan.utils.identifiers import require_uuid

PLAN_NOT_FOUND = "Plan not found"
ACTIVITY_NOT_FOUND = "Activity not found"


def _plan_id(value: str) -> str:
    return require_uuid(value, name="plan_id", code="INVALID_PLAN_ID", label="plan")


def _activity_id(value: str) -> str:
    return require_uuid(
        value,
        name="activity_id",
        code="INVALID_ACTIVITY_ID",
        label="activity",
    )


def build_summary(plan: Plan) -> PlanSummary:
    activities = plan.activities
    total_cost = sum(
        (activity.cost for activity in activities if activity.cost is not None),
        Decimal("0"),
    )
    return PlanSummary(
        total_days=plan.total_days,
        total_activities=len(activities),
        accepted_activities=sum(1 for activity in activities if activity.accepted),
        estimated_total_cost=float(total_cost),
    )


def group_by_day(activities: list[PlanActivity]) -> dict[int, list[ActivitySchema]]:
    grouped: dict[int, list[ActivitySchema]] = defaultdict(list)
    ordered = sorted(activities, key=lambda item: (item.day_number, item.activity_order))
    for activity in ordered:
        grouped[activity.day_number].append(ActivitySchema.model_validate(activity))
    return dict(grouped)


class PlanService:
    """Owner scoped reads and edits of saved plans."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    def list_plans(self, user_id: str, params: PlanListParams) -> PlanListResponse:
        offset = (params.page - 1) * params.limit
        try:
            with session_scope() as session:
                repo = PlanRepository(session)
                total = repo.count_for_user(user_id)
                plans = repo.list_for_user(
                    user_id=user_id,
                    sort=params.sort,
                    descending=params.order == "desc",
                    limit=params.limit,
                    offset=offset,
                )
                items = [PlanListItem.model_validate(plan) for plan in plans]
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc

        return PlanListResponse(
            plans=items,
            pagination=Pagination(
                page=params.page,
                limit=params.limit,
                total=total,
                total_pages=math.ceil(total / params.limit) if total else 0,
            ),
        )

    def get_plan(self, user_id: str, plan_id: str) -> PlanDetailResponse:
        normalized = _plan_id(plan_id)
        try:
            with session_scope() as session:
                plan = PlanRepository(session).get_owned_with_activities(
                    normalized, user_id
                )
                if plan is None:
                    raise NotFoundFailure(PLAN_NOT_FOUND, "PLAN_NOT_FOUND")
                base = PlanListItem.model_validate(plan).model_dump()
                return PlanDetailResponse(
                    **base,
                    user_id=plan.user_id,
                    activities=group_by_day(plan.activities),
                    summary=build_summary(plan),
                )
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc

    def delete_plan(self, user_id: str, plan_id: str) -> None:
        normalized = _plan_id(plan_id)
        try:
            with session_scope() as session:
                repo = PlanRepository(session)
                plan = repo.get_owned(normalized, user_id)
                if plan is None:
                    raise NotFoundFailure(PLAN_NOT_FOUND, "PLAN_NOT_FOUND")
                repo.delete(plan)
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc
        self._logger.info(
            "plan.deleted",
            extra={"plan_id": normalized, "user_id": user_id},
        )

    def update_activity(
        self,
        user_id: str,
        plan_id: str,
        activity_id: str,
        payload: UpdateActivityRequest,
    ) -> UpdateActivityResponse:
        changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
        if "cost" in changes and changes["cost"] is not None:
            changes["cost"] = Decimal(str(changes["cost"]))

        with self._owned_activity(user_id, plan_id, activity_id) as activity:
            for field, value in changes.items():
                setattr(activity, field, value)
            result = UpdateActivityResponse(
                id=activity.id,
                custom_desc=activity.custom_desc,
                opening_hours=activity.opening_hours,
                cost=float(activity.cost) if activity.cost is not None else None,
                message="Activity updated successfully",
            )
        self._logger.info(
            "activity.updated",
            extra={"activity_id": result.id, "fields": sorted(changes)},
        )
        return result

    def set_acceptance(
        self,
        user_id: str,
        plan_id: str,
        activity_id: str,
        *,
        accepted: bool,
    ) -> ActivityToggleResponse:
        with self._owned_activity(user_id, plan_id, activity_id) as activity:
            activity.accepted = accepted
            activity_key = activity.id
        verb = "accepted" if accepted else "rejected"
        self._logger.info(
            "activity.toggled",
            extra={"activity_id": activity_key, "accepted": accepted},
        )
        return ActivityToggleResponse(
            id=activity_key,
            accepted=accepted,
            message=f"Activity {verb} successfully",
        )

    @contextmanager
    def _owned_activity(
        self,
        user_id: str,
        plan_id: str,
        activity_id: str,
    ) -> Iterator[PlanActivity]:
        plan_key = _plan_id(plan_id)
        activity_key = _activity_id(activity_id)
        try:
            with session_scope() as session:
                plan = PlanRepository(session).get_owned(plan_key, user_id)
                if plan is None:
                    raise NotFoundFailure(PLAN_NOT_FOUND, "PLAN_NOT_FOUND")
                activity = ActivityRepository(session).get_in_plan(
                    activity_key, plan.id
                )
                if activity is None:
                    raise NotFoundFailure(ACTIVITY_NOT_FOUND, "ACTIVITY_NOT_FOUND")
                yield activity
        except SQLAlchemyError as exc:
            raise classify_database_error(exc) from exc


_plan_service: PlanService | None = None


def get_plan_service() -> PlanService:
    global _plan_service
    if _plan_service is None:
        _plan_service = PlanService()
    return _plan_service
