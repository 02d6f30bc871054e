from .editing import ActivityEditSession
from .poller import (
    GenerationStatusPoller,
    PollerError,
    PollResult,
    StatusSnapshot,
)

__all__ = [
    "ActivityEditSession",
    "GenerationStatusPoller",
    "PollerError",
    "PollResult",
    "StatusSnapshot",
]
