from .activity_repository import ActivityRepository
from .plan_repository import PlanRepository
from .user_repository import UserRepository

__all__ = [
    "ActivityRepository",
    "PlanRepository",
    "UserRepository",
]
