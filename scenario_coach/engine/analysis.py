"""
Risk & Milestone Analyzer

Turns a Monte Carlo aggregate into the numbers a user actually reads:
a bounded risk score, projected end-of-horizon balances, dated checkpoints
and a few plain-language observations.

IMPORTANT: Milestones are linear interpolations of the Monte Carlo mean,
not re-simulations of the path. A scenario whose trajectory is front-loaded
(an emergency in month 1, a job loss in the first months) will have
milestones that disagree with the true intermediate path. This is an
accepted approximation.

Observations are descriptive only. They state what the simulation shows and
never tell the user what to buy, sell or invest in.
"""

import math

from scenario_coach.models.results import (
    Milestone,
    MonteCarloResult,
    ProjectedOutcome,
    ScenarioResult,
)
from scenario_coach.models.scenario import FinancialScenario, SimulationContext

CHECKPOINT_MONTHS = (3, 6, 12, 18, 24)
EMERGENCY_FUND_MONTHS = 6

# Runway reported when expenses are zero or savings would last longer
RUNWAY_CAP_MONTHS = 600.0

VARIANCE_RISK_CAP = 50.0
SUCCESS_RISK_WEIGHT = 50.0


def calculate_risk_score(result: MonteCarloResult) -> int:
    """
    Score downside risk from 0 (calm) to 100 (volatile and losing).

    Two halves, each capped at 50:
    - dispersion: coefficient of variation (std / |mean|) times 100;
      a zero mean contributes the full 50
    - failure: share of paths that end below today's net worth, times 50
    """
    if result.mean == 0:
        variance_risk = VARIANCE_RISK_CAP
    else:
        cv = result.standard_deviation / abs(result.mean)
        variance_risk = min(VARIANCE_RISK_CAP, cv * 100) if math.isfinite(cv) else VARIANCE_RISK_CAP

    success_risk = (1 - result.probability_of_success) * SUCCESS_RISK_WEIGHT
    score = round(variance_risk + success_risk)
    return int(min(100, max(0, score)))


def generate_milestones(
    context: SimulationContext,
    scenario: FinancialScenario,
    result: MonteCarloResult,
) -> list[Milestone]:
    """Checkpoints at 3, 6, 12, 18 and 24 months that fall inside the timeframe."""
    milestones = []
    payment = context.monthly_contributions.debt_payment
    emergency_target = context.current_expenses * EMERGENCY_FUND_MONTHS

    for month in CHECKPOINT_MONTHS:
        if month > scenario.timeframe_months:
            continue

        projected_savings = context.current_savings + result.mean * (month / scenario.timeframe_months)
        projected_debt = max(0.0, context.current_debt - payment * month)

        if projected_debt == 0 and context.current_debt > 0:
            event = "Debt-free milestone"
        elif projected_savings >= emergency_target:
            event = "6-month emergency fund achieved"
        else:
            event = f"Month {month} checkpoint"

        milestones.append(Milestone(
            month=month,
            savings=round(projected_savings),
            debt=round(projected_debt),
            event=event,
        ))

    return milestones


def emergency_runway(savings: float, monthly_expenses: float) -> float:
    """Months `savings` would cover `monthly_expenses`, capped."""
    if monthly_expenses <= 0:
        return RUNWAY_CAP_MONTHS
    return min(RUNWAY_CAP_MONTHS, max(0.0, savings) / monthly_expenses)


def project_outcome(
    context: SimulationContext,
    result: MonteCarloResult,
) -> ProjectedOutcome:
    """End-of-horizon balances averaged over every simulated path."""
    return ProjectedOutcome(
        final_savings=result.mean_final_savings,
        final_debt=result.mean_final_debt,
        net_worth=result.mean,
        monthly_disposable=context.monthly_disposable,
        emergency_runway_months=emergency_runway(
            result.mean_final_savings, context.current_expenses
        ),
    )


def scenario_hints(
    context: SimulationContext,
    scenario: FinancialScenario,
    result: MonteCarloResult,
    outcome: ProjectedOutcome,
) -> list[str]:
    """
    Short, descriptive observations about one simulated scenario.

    Ordered from most to least pressing. Duplicates are never produced.
    """
    hints: list[str] = []

    if context.monthly_disposable < 0:
        hints.append(
            "Monthly expenses exceed income, so balances in this scenario "
            "depend on existing savings."
        )
    if outcome.emergency_runway_months < 3:
        hints.append(
            f"Projected savings cover about {outcome.emergency_runway_months:.1f} "
            f"months of expenses at the end of this scenario."
        )
    elif outcome.emergency_runway_months >= EMERGENCY_FUND_MONTHS:
        hints.append("Projected savings reach a 6-month expense cushion.")

    if result.probability_of_success < 0.5:
        hints.append(
            f"Only {result.probability_of_success:.0%} of simulated paths end "
            f"above today's net worth."
        )

    spread = result.percentile_90 - result.percentile_10
    if result.mean != 0 and spread > 0.25 * abs(result.mean):
        hints.append(
            f"Outcomes vary widely: the middle 80% of paths span ${spread:,.0f}."
        )

    if context.current_debt > 0 and outcome.final_debt < 0.005:
        hints.append(
            f"Debt is fully repaid within {scenario.timeframe_months} months "
            f"in the typical path."
        )

    return hints


def analyze_scenario(
    context: SimulationContext,
    scenario: FinancialScenario,
    result: MonteCarloResult,
) -> ScenarioResult:
    """Assemble the full ScenarioResult for one simulated scenario."""
    outcome = project_outcome(context, result)
    return ScenarioResult(
        scenario_id=scenario.id,
        projected_outcome=outcome,
        milestones=generate_milestones(context, scenario, result),
        risk_score=calculate_risk_score(result),
        confidence_level=result.probability_of_success,
        recommendations=scenario_hints(context, scenario, result, outcome),
        simulation=result,
    )
