"""Simulation engine package."""

from scenario_coach.engine.analysis import (
    analyze_scenario,
    calculate_risk_score,
    emergency_runway,
    generate_milestones,
    project_outcome,
    scenario_hints,
)
from scenario_coach.engine.errors import InvalidInputError, InvalidScenarioError
from scenario_coach.engine.monte_carlo import (
    DEFAULT_ITERATIONS,
    make_rng,
    run_monte_carlo,
    simulate_single_path,
    summarize_outcomes,
)

__all__ = [
    # Analysis
    "analyze_scenario",
    "calculate_risk_score",
    "emergency_runway",
    "generate_milestones",
    "project_outcome",
    "scenario_hints",
    # Errors
    "InvalidInputError",
    "InvalidScenarioError",
    # Monte Carlo
    "DEFAULT_ITERATIONS",
    "make_rng",
    "run_monte_carlo",
    "simulate_single_path",
    "summarize_outcomes",
]
