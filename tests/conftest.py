"""Shared fixtures for Scenario Coach tests."""

import pytest

from scenario_coach.config.settings import SimulationSettings
from scenario_coach.models import (
    FinancialScenario,
    InterestRates,
    MonthlyContributions,
    ScenarioType,
    SimulationContext,
)


@pytest.fixture
def context() -> SimulationContext:
    """A household with a surplus, some savings and some card debt."""
    return SimulationContext(
        current_income=5000,
        current_expenses=3500,
        current_savings=10000,
        current_debt=5000,
        interest_rates=InterestRates(savings=2, debt=18),
        monthly_contributions=MonthlyContributions(savings=500, debt_payment=300),
    )


@pytest.fixture
def flat_context() -> SimulationContext:
    """No interest and no debt, so paths are easy to compute by hand."""
    return SimulationContext(
        current_income=5000,
        current_expenses=3500,
        current_savings=10000,
        current_debt=0,
    )


@pytest.fixture
def debt_payoff_scenario() -> FinancialScenario:
    return FinancialScenario(
        id="debt",
        type=ScenarioType.DEBT_PAYOFF,
        name="Pay down the card",
        assumptions={"extraMonthlyPayment": 300},
        timeframe_months=12,
    )


@pytest.fixture
def sim_settings() -> SimulationSettings:
    """Small, fast, reproducible simulation settings."""
    return SimulationSettings(
        default_iterations=200,
        max_passes=3,
        scenario_count=5,
        collaborator_timeout_seconds=1.0,
        random_seed=1234,
        max_workers=0,
    )
