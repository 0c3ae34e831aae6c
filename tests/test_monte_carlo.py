"""Tests for the Monte Carlo simulation engine."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from scenario_coach.engine import (
    InvalidScenarioError,
    make_rng,
    run_monte_carlo,
    simulate_single_path,
    summarize_outcomes,
)
from scenario_coach.models import FinancialScenario, ScenarioType


def _scenario(scenario_type, timeframe=12, **assumptions):
    return FinancialScenario(
        type=scenario_type,
        name=scenario_type.value,
        assumptions=assumptions,
        timeframe_months=timeframe,
    )


class TestSummarizeOutcomes:
    """Tests for outcome aggregation."""

    def test_sorted_and_complete(self):
        """Test that outcomes are sorted and none are lost."""
        result = summarize_outcomes([3.0, 1.0, 2.0], starting_net_worth=0)
        assert result.outcomes == [1.0, 2.0, 3.0]
        assert result.iterations == 3

    def test_even_length_median_is_lower_middle(self):
        """Test the median rule for an even number of outcomes."""
        result = summarize_outcomes([4.0, 1.0, 3.0, 2.0], starting_net_worth=0)
        assert result.median == 2.0

    def test_percentile_indices(self):
        """Test nearest-rank percentiles at floor(N*0.1) and floor(N*0.9)."""
        values = [float(i) for i in range(20)]
        result = summarize_outcomes(values, starting_net_worth=0)
        assert result.percentile_10 == 2.0
        assert result.percentile_90 == 18.0

    def test_single_outcome(self):
        """Test that one outcome gives valid indices and zero spread."""
        result = summarize_outcomes([42.0], starting_net_worth=0)
        assert result.median == 42.0
        assert result.percentile_10 == 42.0
        assert result.percentile_90 == 42.0
        assert result.standard_deviation == 0.0

    def test_identical_outcomes_have_zero_deviation(self):
        """Test std is exactly 0 and mean equals the common value."""
        result = summarize_outcomes([0.1] * 7, starting_net_worth=0)
        assert result.standard_deviation == 0.0
        assert result.mean == 0.1

    def test_population_standard_deviation(self):
        """Test std divides by N."""
        result = summarize_outcomes([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0], starting_net_worth=0)
        assert result.standard_deviation == pytest.approx(2.0)

    def test_success_is_strictly_above_start(self):
        """Test that ending exactly at the start is not a success."""
        result = summarize_outcomes([100.0, 100.0, 101.0, 99.0], starting_net_worth=100.0)
        assert result.probability_of_success == 0.25

    def test_empty_outcomes_rejected(self):
        """Test that an empty outcome set is an error."""
        with pytest.raises(InvalidScenarioError):
            summarize_outcomes([], starting_net_worth=0)


class TestSinglePath:
    """Tests for one simulated path."""

    def test_job_loss_covering_horizon_zeroes_income(self, flat_context):
        """Test that income stays 0 for the whole horizon."""
        scenario = _scenario(ScenarioType.JOB_LOSS, timeframe=6, monthsUnemployed=12)
        run = simulate_single_path(flat_context, scenario, make_rng(1))
        # No income means no surplus is ever added
        assert run.final_savings == flat_context.current_savings
        assert len(run.monthly_net_worth) == 6

    def test_job_loss_restores_income(self, flat_context):
        """Test that income comes back once unemployment ends."""
        scenario = _scenario(ScenarioType.JOB_LOSS, timeframe=6, monthsUnemployed=2)
        run = simulate_single_path(flat_context, scenario, make_rng(1))
        # Four working months at a 1500 surplus
        assert run.final_savings == pytest.approx(flat_context.current_savings + 4 * 1500)

    def test_debt_payoff_never_goes_negative(self, context):
        """Test that a huge extra payment floors debt at 0."""
        scenario = _scenario(ScenarioType.DEBT_PAYOFF, extraMonthlyPayment=1e9)
        run = simulate_single_path(context, scenario, make_rng(7))
        assert run.final_debt == 0.0

    def test_emergency_hits_savings_once(self, flat_context):
        """Test that the emergency cost is taken in month 1 only."""
        scenario = _scenario(ScenarioType.EMERGENCY_EVENT, timeframe=3, cost=1000)
        run = simulate_single_path(flat_context, scenario, make_rng(3))
        lost = flat_context.current_savings + 3 * 1500 - run.final_savings
        assert 900 <= lost <= 1100

    def test_goal_achievement_is_deterministic(self, flat_context):
        """Test that a scenario with no perturbation has no randomness."""
        scenario = _scenario(ScenarioType.GOAL_ACHIEVEMENT, timeframe=12)
        first = simulate_single_path(flat_context, scenario, make_rng(1))
        second = simulate_single_path(flat_context, scenario, make_rng(2))
        assert first.final_net_worth == second.final_net_worth == 10000 + 12 * 1500


class TestRunMonteCarlo:
    """Tests for the full Monte Carlo run."""

    @pytest.mark.parametrize("iterations", [1, 2, 10, 257])
    def test_outcome_count_and_order(self, context, debt_payoff_scenario, iterations):
        """Test len(outcomes) == iterations and ascending order."""
        result = run_monte_carlo(context, debt_payoff_scenario, iterations, rng=make_rng(5))
        assert len(result.outcomes) == iterations
        assert result.outcomes == sorted(result.outcomes)

    @pytest.mark.parametrize("scenario_type", list(ScenarioType))
    def test_statistics_within_range(self, context, scenario_type):
        """Test mean, median and percentiles lie within [min, max]."""
        scenario = _scenario(scenario_type, timeframe=18)
        result = run_monte_carlo(context, scenario, 300, rng=make_rng(11))
        for value in (result.mean, result.median, result.percentile_10, result.percentile_90):
            assert result.min_outcome <= value <= result.max_outcome
        assert result.standard_deviation >= 0

    def test_fixed_seed_is_reproducible(self, context, debt_payoff_scenario):
        """Test that the same seed gives identical outcomes."""
        first = run_monte_carlo(context, debt_payoff_scenario, 200, rng=make_rng(99))
        second = run_monte_carlo(context, debt_payoff_scenario, 200, rng=make_rng(99))
        assert first.outcomes == second.outcomes

    def test_executor_matches_sequential(self, context):
        """Test that mapping iterations onto an executor changes nothing."""
        scenario = _scenario(ScenarioType.INCOME_CHANGE, percentChange=8)
        sequential = run_monte_carlo(context, scenario, 150, rng=make_rng(21))
        with ThreadPoolExecutor(max_workers=4) as executor:
            parallel = run_monte_carlo(
                context, scenario, 150, rng=make_rng(21), executor=executor
            )
        assert parallel.outcomes == sequential.outcomes
        assert parallel.mean == sequential.mean

    def test_zero_iterations_rejected(self, context, debt_payoff_scenario):
        """Test that iterations must be at least 1."""
        with pytest.raises(InvalidScenarioError):
            run_monte_carlo(context, debt_payoff_scenario, 0)

    def test_debt_payoff_end_to_end(self, context, debt_payoff_scenario):
        """Test the reference household paying down its card."""
        result = run_monte_carlo(context, debt_payoff_scenario, 1000, rng=make_rng(2024))
        assert result.mean_final_debt == 0.0
        assert result.probability_of_success > 0.5
        assert result.mean > context.starting_net_worth
