from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from wanderplan.api import activities, auth, health, plans
from wanderplan.core.logging import get_logger, setup_logging
from wanderplan.core.redis import close_redis_client
from wanderplan.core.settings import settings
from wanderplan.services.generation_worker import get_generation_worker
from wanderplan.utils.api_errors import (
    ApiError,
    RateLimitFailure,
    format_exception,
    validation_details,
)
from wanderplan.utils.metrics import APIMetricsMiddleware
from wanderplan.utils.responses import error_response

LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    LOGGER.info(
        "app.startup",
        extra={"app_env": settings.app_env, "version": settings.app_version},
    )
    worker = get_generation_worker()
    if settings.generation_worker_enabled:
        await worker.start()
    try:
        yield
    finally:
        await worker.stop()
        await close_redis_client()
        LOGGER.info("app.shutdown")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitFailure) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= 500:
        LOGGER.error(
            "api.error",
            extra={"path": request.url.path, "code": exc.code, "error": exc.message},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.code, exc.details),
        headers=headers,
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_response(
            "Invalid request data",
            "VALIDATION_ERROR",
            validation_details(exc.errors()),
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    detail = format_exception(exc, request_id=request_id)
    LOGGER.exception("api.unhandled_error", extra=detail.as_dict())
    return JSONResponse(
        status_code=500,
        content=error_response(
            "An unexpected error occurred",
            "INTERNAL_SERVER_ERROR",
            {"request_id": request_id},
        ),
    )


def create_app() -> FastAPI:
    """Application factory registering routers, middleware, and config."""

    setup_logging()
    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.add_middleware(APIMetricsMiddleware)
    application.include_router(health.router)
    application.include_router(auth.router)
    application.include_router(plans.router)
    application.include_router(activities.router)
    application.add_exception_handler(ApiError, api_error_handler)
    application.add_exception_handler(
        RequestValidationError,
        request_validation_handler,
    )
    application.add_exception_handler(Exception, unhandled_error_handler)
    return application
