from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from wanderplan.api.deps import get_current_user
from wanderplan.core.logging import get_logger
from wanderplan.models.schemas import (
    GeneratePlanRequest,
    GeneratePlanResponse,
    MessageResponse,
    PlanDetailResponse,
    PlanListParams,
    PlanListResponse,
)
from wanderplan.services.auth_service import CurrentUser
from wanderplan.services.generation_service import (
    GenerationService,
    get_generation_service,
)
from wanderplan.services.plan_service import PlanService, get_plan_service
from wanderplan.utils.api_errors import (
    ApiError,
    InternalFailure,
    ValidationFailure,
    validation_details,
)

router = APIRouter(prefix="/api", tags=["plans"])
LOGGER = get_logger(__name__)


@router.post(
    "/plans/generate",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=GeneratePlanResponse,
    summary="Request itinerary generation",
    description="Stores the trip brief as a processing plan and queues the AI job.",
)
async def generate_plan(
    payload: GeneratePlanRequest,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> GeneratePlanResponse:
    return await service.create_generation(user.id, payload)


@router.get(
    "/plans/generate/{job_id}/status",
    summary="Generation job status",
    description="Read-only status of a generation job owned by the caller.",
)
def read_generation_status(
    job_id: str,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: GenerationService = Depends(get_generation_service),  # noqa: B008
) -> JSONResponse:
    try:
        result = service.get_status(user.id, job_id)
    except ApiError:
        raise
    except Exception as exc:
        LOGGER.exception("generation.status_failed", extra={"job_id": job_id})
        raise InternalFailure("An unexpected error occurred") from exc

    if result is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=None)
    return JSONResponse(content=result.to_payload())


@router.get(
    "/plans",
    response_model=PlanListResponse,
    summary="List plans",
    description="Paginated plans of the caller; unknown query parameters are rejected.",
)
def list_plans(
    request: Request,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> PlanListResponse:
    try:
        params = PlanListParams.model_validate(dict(request.query_params))
    except ValidationError as exc:
        raise ValidationFailure(
            "Invalid query parameters",
            details=validation_details(exc.errors()),
        ) from exc
    return service.list_plans(user.id, params)


@router.get(
    "/plans/{plan_id}",
    response_model=PlanDetailResponse,
    summary="Plan details",
)
def get_plan(
    plan_id: str,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> PlanDetailResponse:
    return service.get_plan(user.id, plan_id)


@router.delete(
    "/plans/{plan_id}",
    response_model=MessageResponse,
    summary="Delete plan",
    description="Deletes the plan together with its activities and generation errors.",
)
def delete_plan(
    plan_id: str,
    user: CurrentUser = Depends(get_current_user),  # noqa: B008
    service: PlanService = Depends(get_plan_service),  # noqa: B008
) -> MessageResponse:
    service.delete_plan(user.id, plan_id)
    return MessageResponse(message="Plan deleted successfully")
