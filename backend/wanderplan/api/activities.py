from __future__ import annotations

from fastapi import APIRouter, Depends

from wanderplan.api.deps import get_current_user
from wanderplan.models.schemas import (
    ActivityToggleResponse,
    UpdateActivityRequest,
    UpdateActivityResponse,
)
from wanderplan.services.auth_service import CurrentUser
from wanderplan.services.plan_service import PlanService, get_plan_service

router = APIRouter(prefix="/api/plans/{plan_id}/activities", tags=["activities"])


@router.put(
    "/{activity_id}",
    response_model=UpdateActivityResponse,
    summary="Edit activity",
)
def update_activity(
    plan_id: str,
    activity_id: str,
    payload: UpdateActivityRequest,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> UpdateActivityResponse:
    return service.update_activity(user.id, plan_id, activity_id, payload)


@router.post(
    "/{activity_id}/accept",
    response_model=ActivityToggleResponse,
    summary="Accept activity",
)
def accept_activity(
    plan_id: str,
    activity_id: str,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> ActivityToggleResponse:
    return service.set_acceptance(user.id, plan_id, activity_id, accepted=True)


@router.post(
    "/{activity_id}/reject",
    response_model=ActivityToggleResponse,
    summary="Reject activity",
)
def reject_activity(
    plan_id: str,
    activity_id: str,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> ActivityToggleResponse:
    return service.set_acceptance(user.id, plan_id, activity_id, accepted=False)
