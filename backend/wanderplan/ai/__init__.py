from .client import AiClient, get_ai_client, reset_ai_client
from .exceptions import AiClientError
from .models import AiActivity, AiDay, AiGenerationRequest, AiTravelPlan

__all__ = [
    "AiClient",
    "get_ai_client",
    "reset_ai_client",
    "AiClientError",
    "AiActivity",
    "AiDay",
    "AiGenerationRequest",
    "AiTravelPlan",
]
