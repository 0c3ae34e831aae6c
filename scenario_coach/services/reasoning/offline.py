"""
Offline Reasoning Service

The safe-default collaborator. Produces answers without any external call:
- a fixed, context-aware set of scenarios
- fail-open verification (valid, score 0.5, no adjustments)
- three general recommendations
- a one-sentence what-if summary

ResilientReasoningService falls back to this whenever the live service
times out, errors or answers in the wrong shape.
"""

from scenario_coach.models.reports import WhatIfChanges, WhatIfImprovement
from scenario_coach.models.results import (
    Recommendation,
    RecommendationRequest,
    ScenarioResult,
    VerificationResult,
)
from scenario_coach.models.scenario import (
    FinancialScenario,
    ScenarioImpact,
    ScenarioType,
    SimulationContext,
)
from scenario_coach.services.reasoning.interface import ReasoningService


FALLBACK_RECOMMENDATIONS = (
    "Build emergency fund to 6 months of expenses",
    "Focus on highest-interest debt first",
    "Review and optimize monthly expenses",
)

DEFAULT_TIMEFRAME_MONTHS = 12


def default_scenarios(context: SimulationContext, count: int = 5) -> list[FinancialScenario]:
    """
    Deterministic mix of positive, negative and neutral scenarios.

    Debt payoff is only offered when there is debt to pay off. Ids are
    stable (`default_<type>`), with a numeric suffix once the set repeats.
    """
    templates = [
        dict(
            type=ScenarioType.INCOME_CHANGE,
            name="Modest raise",
            description="Income rises by 5% and stays there.",
            assumptions={"percentChange": 5.0},
            probability=0.6,
            impact=ScenarioImpact.POSITIVE,
        ),
        dict(
            type=ScenarioType.EMERGENCY_EVENT,
            name="Unexpected expense",
            description="A one-off cost of about one month of expenses.",
            assumptions={"cost": round(max(context.current_expenses, 1000.0), 2)},
            probability=0.3,
            impact=ScenarioImpact.NEGATIVE,
        ),
        dict(
            type=ScenarioType.INFLATION_IMPACT,
            name="Steady inflation",
            description="Expenses creep up at 3% a year.",
            assumptions={"annualRate": 3.0},
            probability=0.8,
            impact=ScenarioImpact.NEUTRAL,
        ),
        dict(
            type=ScenarioType.JOB_LOSS,
            name="Short job loss",
            description="No income for three months, then back to normal.",
            assumptions={"monthsUnemployed": 3.0},
            probability=0.1,
            impact=ScenarioImpact.NEGATIVE,
        ),
        dict(
            type=ScenarioType.EXPENSE_REDUCTION,
            name="Trim spending",
            description="Monthly expenses drop by 10%.",
            assumptions={"percentReduction": 10.0},
            probability=0.5,
            impact=ScenarioImpact.POSITIVE,
        ),
    ]
    if context.current_debt > 0:
        templates.insert(2, dict(
            type=ScenarioType.DEBT_PAYOFF,
            name="Extra debt payments",
            description="An additional $200 a month goes to debt.",
            assumptions={"extraMonthlyPayment": 200.0},
            probability=0.5,
            impact=ScenarioImpact.POSITIVE,
        ))

    scenarios = []
    for i in range(count):
        template = templates[i % len(templates)]
        round_number = i // len(templates)
        scenario_id = f"default_{template['type'].value}"
        if round_number:
            scenario_id += f"_{round_number + 1}"
        scenarios.append(FinancialScenario(
            id=scenario_id,
            timeframe_months=DEFAULT_TIMEFRAME_MONTHS,
            **template,
        ))
    return scenarios


def what_if_sentence(improvement: WhatIfImprovement, timeframe_months: int) -> str:
    return (
        f"The proposed changes would result in a ${improvement.net_worth_difference:.0f} "
        f"improvement in net worth over {timeframe_months} months."
    )


class OfflineReasoningService(ReasoningService):
    """Reasoning service that never calls out and never fails."""

    async def generate_scenarios(
        self,
        context: SimulationContext,
        count: int,
    ) -> list[FinancialScenario]:
        return default_scenarios(context, count)

    async def verify(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        result: ScenarioResult,
    ) -> VerificationResult:
        return VerificationResult.unavailable()

    async def summarize_recommendations(
        self,
        context: SimulationContext,
        request: RecommendationRequest,
    ) -> list[Recommendation]:
        return [Recommendation(action=text) for text in FALLBACK_RECOMMENDATIONS]

    async def analyze_what_if(
        self,
        context: SimulationContext,
        changes: WhatIfChanges,
        improvement: WhatIfImprovement,
        timeframe_months: int,
    ) -> str:
        return what_if_sentence(improvement, timeframe_months)
