"""
Reasoning Services Package

Abstract interface for the reasoning collaborator, the offline safe-default
implementation, and the timeout/fallback wrapper that composes them.
"""

from scenario_coach.services.reasoning.interface import (
    CollaboratorUnavailableError,
    MalformedResponseError,
    ReasoningError,
    ReasoningService,
)
from scenario_coach.services.reasoning.offline import (
    FALLBACK_RECOMMENDATIONS,
    OfflineReasoningService,
    default_scenarios,
    what_if_sentence,
)
from scenario_coach.services.reasoning.resilient import ResilientReasoningService

__all__ = [
    # Interface
    "ReasoningService",
    # Exceptions
    "CollaboratorUnavailableError",
    "MalformedResponseError",
    "ReasoningError",
    # Implementations
    "FALLBACK_RECOMMENDATIONS",
    "OfflineReasoningService",
    "ResilientReasoningService",
    "default_scenarios",
    "what_if_sentence",
]
