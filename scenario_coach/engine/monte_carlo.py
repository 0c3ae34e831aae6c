"""
Monte Carlo Simulation Engine

Runs many independent stochastic paths of one scenario and aggregates their
final net worth into an outcome distribution.

DESIGN DECISION: Randomness is an explicit numpy Generator.
- Production passes nothing and gets OS entropy
- Tests pass a seeded generator and get identical results every time
- Every iteration gets its own child generator spawned up front, so the
  result for a given seed does not depend on how iterations are scheduled
  (in-process or on an executor)

Iterations only read the (immutable) context and scenario and write their
own private state. Aggregation waits for all of them.
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from itertools import repeat
from typing import Optional, Sequence

import numpy as np

from scenario_coach.engine.errors import InvalidScenarioError
from scenario_coach.models.results import MonteCarloResult, SimulationRun
from scenario_coach.models.scenario import (
    DebtPayoffAssumptions,
    EmergencyEventAssumptions,
    ExpenseReductionAssumptions,
    FinancialScenario,
    IncomeChangeAssumptions,
    InflationImpactAssumptions,
    InvestmentGrowthAssumptions,
    JobLossAssumptions,
    ScenarioAssumptions,
    SimulationContext,
)

DEFAULT_ITERATIONS = 1000

# Bounds of the monthly multiplicative noise applied to every perturbation
RANDOM_FACTOR_LOW = 0.9
RANDOM_FACTOR_HIGH = 1.1


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create a generator; None seeds from OS entropy."""
    return np.random.default_rng(seed)


@dataclass
class PathState:
    """Private, mutable state of one simulated path."""
    savings: float
    debt: float
    income: float
    expenses: float

    @property
    def net_worth(self) -> float:
        return self.savings - self.debt


def _apply_perturbation(
    state: PathState,
    assumptions: ScenarioAssumptions,
    context: SimulationContext,
    month: int,
    factor: float,
) -> None:
    """Apply this month's scenario-specific change to the path state."""
    if isinstance(assumptions, IncomeChangeAssumptions):
        change = assumptions.percent_change / 100 * factor
        state.income = max(0.0, context.current_income * (1 + change))

    elif isinstance(assumptions, ExpenseReductionAssumptions):
        reduction = assumptions.percent_reduction / 100 * factor
        state.expenses = max(0.0, context.current_expenses * (1 - reduction))

    elif isinstance(assumptions, DebtPayoffAssumptions):
        state.debt = max(0.0, state.debt - assumptions.extra_monthly_payment * factor)

    elif isinstance(assumptions, EmergencyEventAssumptions):
        if month == 1:
            state.savings = max(0.0, state.savings - assumptions.cost * factor)

    elif isinstance(assumptions, JobLossAssumptions):
        if month <= assumptions.months_unemployed:
            state.income = 0.0
        else:
            state.income = context.current_income

    elif isinstance(assumptions, InflationImpactAssumptions):
        state.expenses *= 1 + assumptions.annual_rate / 12 / 100 * factor

    elif isinstance(assumptions, InvestmentGrowthAssumptions):
        state.savings *= 1 + assumptions.annual_return / 12 / 100 * factor

    # goal_achievement: no perturbation


def simulate_single_path(
    context: SimulationContext,
    scenario: FinancialScenario,
    rng: np.random.Generator,
) -> SimulationRun:
    """
    Walk months 1..timeframe_months once.

    Each month applies the scenario perturbation (scaled by a uniform factor
    in [0.9, 1.1]), then the regular cash flow: surplus after the debt
    payment goes to savings, both balances accrue monthly interest.
    """
    assumptions = scenario.typed_assumptions
    state = PathState(
        savings=context.current_savings,
        debt=context.current_debt,
        income=context.current_income,
        expenses=context.current_expenses,
    )
    savings_rate = context.interest_rates.savings / 12 / 100
    debt_rate = context.interest_rates.debt / 12 / 100
    scheduled_payment = context.monthly_contributions.debt_payment

    factors = rng.uniform(RANDOM_FACTOR_LOW, RANDOM_FACTOR_HIGH, size=scenario.timeframe_months)
    monthly_net_worth: list[float] = []

    for month, factor in enumerate(factors, start=1):
        _apply_perturbation(state, assumptions, context, month, float(factor))

        disposable = state.income - state.expenses
        debt_payment = min(state.debt, scheduled_payment)

        state.savings += max(0.0, disposable - debt_payment)
        state.savings *= 1 + savings_rate

        state.debt = max(0.0, state.debt - debt_payment)
        state.debt *= 1 + debt_rate

        monthly_net_worth.append(state.net_worth)

    return SimulationRun(
        final_net_worth=state.net_worth,
        final_savings=state.savings,
        final_debt=state.debt,
        monthly_net_worth=monthly_net_worth,
    )


def summarize_outcomes(
    final_values: Sequence[float],
    starting_net_worth: float,
    mean_final_savings: float = 0.0,
    mean_final_debt: float = 0.0,
) -> MonteCarloResult:
    """
    Aggregate final net worth values into a MonteCarloResult.

    - median: element (N - 1) // 2 of the sorted values, i.e. the
      lower-middle one when N is even
    - standard deviation: population (divides by N)
    - percentiles: nearest rank at floor(N * 0.1) and floor(N * 0.9)
    - probability of success: share strictly above the starting net worth
    """
    values = np.sort(np.asarray(final_values, dtype=float))
    n = values.size
    if n == 0:
        raise InvalidScenarioError("Cannot summarize an empty outcome set")

    lowest, highest = float(values[0]), float(values[-1])
    if lowest == highest:
        mean = lowest
        std = 0.0
    else:
        # pairwise summation can land an ulp outside the range
        mean = min(max(float(values.mean()), lowest), highest)
        std = float(values.std())

    p10 = float(values[min(n - 1, n // 10)])
    p90 = float(values[min(n - 1, n * 9 // 10)])
    successes = int(np.count_nonzero(values > starting_net_worth))

    return MonteCarloResult(
        outcomes=values.tolist(),
        mean=mean,
        median=float(values[(n - 1) // 2]),
        standard_deviation=std,
        percentile_10=p10,
        percentile_90=p90,
        probability_of_success=successes / n,
        starting_net_worth=starting_net_worth,
        mean_final_savings=mean_final_savings,
        mean_final_debt=mean_final_debt,
    )


def run_monte_carlo(
    context: SimulationContext,
    scenario: FinancialScenario,
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[np.random.Generator] = None,
    executor: Optional[Executor] = None,
) -> MonteCarloResult:
    """
    Simulate `scenario` `iterations` times and summarize the outcomes.

    Args:
        context: Starting financial state (read only)
        scenario: Scenario to simulate (read only)
        iterations: Number of independent paths, at least 1
        rng: Random source; a fresh entropy-seeded generator if None
        executor: Optional executor to map iterations onto

    Raises:
        InvalidScenarioError: iterations < 1 or timeframe_months < 1
    """
    if iterations < 1:
        raise InvalidScenarioError(f"iterations must be >= 1, got {iterations}")
    if scenario.timeframe_months < 1:
        raise InvalidScenarioError(
            f"timeframe_months must be >= 1, got {scenario.timeframe_months}"
        )

    rng = rng if rng is not None else make_rng()
    children = rng.spawn(iterations)

    if executor is None:
        runs = [simulate_single_path(context, scenario, child) for child in children]
    else:
        runs = list(executor.map(
            simulate_single_path,
            repeat(context, iterations),
            repeat(scenario, iterations),
            children,
            chunksize=max(1, iterations // 32),
        ))

    return summarize_outcomes(
        [run.final_net_worth for run in runs],
        starting_net_worth=context.starting_net_worth,
        mean_final_savings=float(np.mean([run.final_savings for run in runs])),
        mean_final_debt=float(np.mean([run.final_debt for run in runs])),
    )
