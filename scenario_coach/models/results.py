"""
Result Models for Scenario Coach

Everything the engine, the reasoning collaborator and the orchestrator hand
back to callers. Models that come back from the reasoning service
(VerificationResult, Recommendation) accept camelCase keys, because that is
what the collaborator's JSON uses.

DESIGN DECISION: Results are plain, serializable pydantic models.
The engine never returns numpy arrays or other library types, so results
can be logged, cached or rendered without conversion.
"""

import math
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from scenario_coach.models.scenario import CamelModel, ScenarioImpact, ScenarioType


# =============================================================================
# SIMULATION OUTPUT
# =============================================================================

class SimulationRun(CamelModel):
    """
    Outcome of one stochastic path.

    Ephemeral: the Monte Carlo engine keeps only the final values.
    """

    final_net_worth: float
    final_savings: float
    final_debt: float
    monthly_net_worth: list[float] = Field(default_factory=list)


class MonteCarloResult(CamelModel):
    """
    Aggregate of many independent simulation runs.

    `outcomes` is sorted ascending and has exactly one entry per iteration.
    The median is the lower-middle element for even lengths.
    """

    outcomes: list[float]
    mean: float
    median: float
    standard_deviation: float = Field(ge=0.0)
    percentile_10: float
    percentile_90: float
    probability_of_success: float = Field(ge=0.0, le=1.0)

    starting_net_worth: float = 0.0
    mean_final_savings: float = 0.0
    mean_final_debt: float = 0.0

    @property
    def iterations(self) -> int:
        return len(self.outcomes)

    @property
    def min_outcome(self) -> float:
        return self.outcomes[0]

    @property
    def max_outcome(self) -> float:
        return self.outcomes[-1]


# =============================================================================
# SCENARIO RESULT
# =============================================================================

class ProjectedOutcome(CamelModel):
    """Headline numbers for one scenario at the end of its timeframe."""

    final_savings: float
    final_debt: float
    net_worth: float
    monthly_disposable: float
    emergency_runway_months: float


class Milestone(CamelModel):
    """
    A dated checkpoint.

    Interpolated linearly from the Monte Carlo mean, so it is an
    approximation of the path, not a re-simulation.
    """

    month: int = Field(gt=0)
    savings: float
    debt: float = Field(ge=0.0)
    event: str


class ScenarioResult(CamelModel):
    """Simulation, risk and milestone analysis for one scenario."""

    scenario_id: str
    projected_outcome: ProjectedOutcome
    milestones: list[Milestone] = Field(default_factory=list)
    risk_score: int = Field(ge=0, le=100)
    confidence_level: float = Field(ge=0.0, le=1.0)
    recommendations: list[str] = Field(default_factory=list)
    simulation: Optional[MonteCarloResult] = Field(
        default=None,
        exclude=True,
        description="Full distribution behind the headline numbers",
    )


# =============================================================================
# VERIFICATION
# =============================================================================

class VerificationResult(CamelModel):
    """
    A reasoning service's plausibility check of one projection.

    `adjustments` maps assumption keys to replacement numbers. Only keys the
    scenario already has are ever applied.
    """

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    adjustments: dict[str, float] = Field(default_factory=dict)
    verification_score: float = Field(ge=0.0, le=1.0)
    explanation: str = ""

    @field_validator("adjustments")
    @classmethod
    def finite_adjustments(cls, v: dict[str, float]) -> dict[str, float]:
        for key, value in v.items():
            if not math.isfinite(value):
                raise ValueError(f"Adjustment for {key!r} is not a finite number")
        return v

    @classmethod
    def unavailable(cls) -> "VerificationResult":
        """Fail-open default used whenever verification cannot run."""
        return cls(
            is_valid=True,
            issues=[],
            adjustments={},
            verification_score=0.5,
            explanation="verification unavailable",
        )


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

class RecommendationPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(CamelModel):
    """
    One educational next step.

    Collaborator recommendations carry a priority; the built-in general
    ones do not and render as the bare action.
    """

    priority: Optional[RecommendationPriority] = None
    action: str = Field(..., min_length=1)
    rationale: str = ""

    @field_validator("priority", mode="before")
    @classmethod
    def lowercase_priority(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_text(self) -> str:
        if self.priority is None:
            return self.action
        text = f"[{self.priority.value.upper()}] {self.action}"
        if self.rationale:
            text += f": {self.rationale}"
        return text


class ScenarioSummary(CamelModel):
    """Per-scenario digest sent to the recommendation call."""

    name: str
    type: ScenarioType
    impact: ScenarioImpact
    risk_score: int
    confidence: float
    verified: bool


class RecommendationRequest(CamelModel):
    """Everything the recommendation call gets to see."""

    scenarios: list[ScenarioSummary]
    highest_risk_scenario: Optional[str] = None
    most_confident_positive_scenario: Optional[str] = None
    remaining_issue_count: int = 0
