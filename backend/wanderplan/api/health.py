from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wanderplan.core.db import check_db_health
from wanderplan.core.redis import check_redis_health
from wanderplan.services.generation_worker import get_generation_worker
from wanderplan.utils.metrics import get_metrics_registry
from wanderplan.utils.responses import error_response, success_response

router = APIRouter(tags=["health"])


@router.get("/healthz")
def read_healthz() -> dict:
    """Basic liveness endpoint."""

    return success_response({"status": "ok"})


@router.get("/healthz/db")
async def read_db_health() -> JSONResponse:
    db_status = await check_db_health()
    redis_status = await check_redis_health()
    worker = get_generation_worker()
    data = {
        "db": db_status,
        "redis": redis_status,
        "worker": {
            "started": worker.started,
            "alive_workers": worker.alive_workers,
            "disabled_reason": worker.disabled_reason,
        },
    }
    if db_status["status"] != "ok":
        return JSONResponse(
            status_code=503,
            content=error_response("database unavailable", "NETWORK_ERROR", data),
        )
    return JSONResponse(content=success_response(data))


@router.get("/healthz/metrics")
def read_metrics() -> dict:
    return success_response(get_metrics_registry().snapshot())
