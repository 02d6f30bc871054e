from .auth_service import AuthService, get_auth_service
from .generation_service import GenerationService, get_generation_service
from .generation_worker import GenerationWorker, get_generation_worker
from .plan_service import PlanService, get_plan_service

__all__ = [
    "AuthService",
    "get_auth_service",
    "GenerationService",
    "get_generation_service",
    "GenerationWorker",
    "get_generation_worker",
    "PlanService",
    "get_plan_service",
]
