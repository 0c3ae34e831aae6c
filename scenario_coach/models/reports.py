"""
Report Models for Scenario Coach

Top-level outputs of the two orchestrated flows:
1. The autonomous refinement loop (AutonomousTestResult)
2. The what-if comparator (WhatIfResult)
"""

from typing import Any, Optional
from uuid import UUID

from pydantic import Field, field_validator

from scenario_coach.models.results import (
    Recommendation,
    ScenarioResult,
    VerificationResult,
)
from scenario_coach.models.scenario import CamelModel, FinancialScenario, require_finite


class ValidationIssue(CamelModel):
    """A descriptive observation about the caller's input."""

    field: str
    issue_type: str
    message: str
    severity: str = Field(default="warning", pattern="^(warning|error)$")
    suggested_fix: Optional[str] = None


# =============================================================================
# AUTONOMOUS REFINEMENT LOOP
# =============================================================================

class PassRecord(CamelModel):
    """What happened in one simulate -> verify -> adjust cycle."""

    pass_number: int = Field(ge=1)
    results: list[ScenarioResult]
    verifications: list[VerificationResult]
    applied_adjustments: dict[str, dict[str, float]] = Field(
        default_factory=dict,
        description="scenario id -> assumption key -> new value",
    )
    ignored_adjustments: dict[str, list[str]] = Field(
        default_factory=dict,
        description="scenario id -> adjustment keys absent from its assumptions",
    )

    @property
    def invalid_count(self) -> int:
        return sum(1 for v in self.verifications if not v.is_valid)

    @property
    def all_valid(self) -> bool:
        return self.invalid_count == 0


class AutonomousTestResult(CamelModel):
    """
    Best-effort outcome of the refinement loop.

    `results` and `verifications` come from the final pass and line up with
    `scenarios` index by index. Not converging is reported through
    `converged` and `remaining_invalid`, never raised.
    """

    scenarios: list[FinancialScenario]
    results: list[ScenarioResult]
    verifications: list[VerificationResult]
    passes: list[PassRecord] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    confidence_score: float = Field(ge=0.0, le=1.0)
    converged: bool
    remaining_invalid: int = Field(ge=0)
    scenario_source: str = "collaborator"
    input_warnings: list[ValidationIssue] = Field(default_factory=list)
    correlation_id: Optional[UUID] = None
    activity_log: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def passes_run(self) -> int:
        return len(self.passes)

    @property
    def final_recommendations(self) -> list[str]:
        return [r.to_text() for r in self.recommendations]


# =============================================================================
# WHAT-IF COMPARATOR
# =============================================================================

class WhatIfChanges(CamelModel):
    """Monthly deltas to apply to the current context. All optional."""

    income_change: float = 0.0
    expense_change: float = 0.0
    extra_savings: float = 0.0
    extra_debt_payment: float = 0.0

    @field_validator("income_change", "expense_change", "extra_savings", "extra_debt_payment")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        return require_finite(v)

    @property
    def is_empty(self) -> bool:
        return not any(
            (self.income_change, self.expense_change, self.extra_savings, self.extra_debt_payment)
        )


class WhatIfImprovement(CamelModel):
    """
    with_changes minus baseline.

    `debt_difference` is a reduction (baseline minus with_changes), so a
    positive value is always good news.
    """

    savings_difference: float
    debt_difference: float
    net_worth_difference: float
    runway_difference: float


class WhatIfResult(CamelModel):
    baseline: ScenarioResult
    with_changes: ScenarioResult
    improvement: WhatIfImprovement
    analysis: str
    timeframe_months: int
