"""Services package."""

from scenario_coach.services.reasoning import (
    CollaboratorUnavailableError,
    MalformedResponseError,
    OfflineReasoningService,
    ReasoningError,
    ReasoningService,
    ResilientReasoningService,
)

__all__ = [
    "CollaboratorUnavailableError",
    "MalformedResponseError",
    "OfflineReasoningService",
    "ReasoningError",
    "ReasoningService",
    "ResilientReasoningService",
]
