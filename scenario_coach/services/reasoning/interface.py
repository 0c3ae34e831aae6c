"""
Abstract Reasoning Service Interface

DESIGN DECISION: Everything that needs judgment (inventing scenarios,
checking projections for plausibility, writing recommendations) sits behind
one abstract interface. This allows us to:
1. Swap Gemini for another model without touching the engine
2. Use scripted fakes in tests
3. Compose a safe-default implementation in front of any live one

The reasoning service is an ADVISOR, not an AUTHORITY.
It can propose scenarios and corrections, but the numbers always come from
the deterministic Monte Carlo engine.
"""

from abc import ABC, abstractmethod

from scenario_coach.models.reports import WhatIfChanges, WhatIfImprovement
from scenario_coach.models.results import (
    Recommendation,
    RecommendationRequest,
    ScenarioResult,
    VerificationResult,
)
from scenario_coach.models.scenario import FinancialScenario, SimulationContext


class ReasoningService(ABC):
    """
    Abstract interface for the reasoning collaborator.

    Any implementation (Gemini, offline defaults, test fakes)
    must implement these methods.
    """

    @abstractmethod
    async def generate_scenarios(
        self,
        context: SimulationContext,
        count: int,
    ) -> list[FinancialScenario]:
        """
        Propose `count` diverse scenarios for the given context.

        Args:
            context: The user's current financial state
            count: How many scenarios to propose

        Returns:
            Scenarios with unique ids

        Raises:
            ReasoningError: If no usable scenarios could be produced
        """
        pass

    @abstractmethod
    async def verify(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        result: ScenarioResult,
    ) -> VerificationResult:
        """
        Judge whether a projection is plausible.

        Args:
            context: Starting financial state
            scenario: The simulated scenario
            result: The analyzed simulation outcome

        Returns:
            Verdict with issues and numeric corrections to assumptions

        Raises:
            ReasoningError: If the verdict could not be obtained
        """
        pass

    @abstractmethod
    async def summarize_recommendations(
        self,
        context: SimulationContext,
        request: RecommendationRequest,
    ) -> list[Recommendation]:
        """
        Turn a finished scenario analysis into prioritized next steps.

        Raises:
            ReasoningError: If recommendations could not be produced
        """
        pass

    @abstractmethod
    async def analyze_what_if(
        self,
        context: SimulationContext,
        changes: WhatIfChanges,
        improvement: WhatIfImprovement,
        timeframe_months: int,
    ) -> str:
        """
        Write a short, plain-language assessment of a what-if comparison.

        Raises:
            ReasoningError: If the analysis could not be produced
        """
        pass


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ReasoningError(Exception):
    """Base exception for reasoning service calls."""
    pass


class CollaboratorUnavailableError(ReasoningError):
    """The reasoning backend could not be reached or kept failing."""
    pass


class MalformedResponseError(ReasoningError):
    """The reasoning backend answered, but not in the expected shape."""
    pass
