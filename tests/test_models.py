"""
Tests for Scenario Coach

Test strategy:
1. Unit tests for individual components (models, engine, validators)
2. Integration tests for flows (with fake reasoning services)
3. No real API calls in tests (use fakes)
"""

import pytest
from uuid import uuid4

from scenario_coach.models.scenario import (
    DEFAULT_EMERGENCY_COST,
    DEFAULT_PERCENT_CHANGE,
    EmergencyEventAssumptions,
    FinancialScenario,
    GoalAchievementAssumptions,
    IncomeChangeAssumptions,
    JobLossAssumptions,
    ScenarioImpact,
    ScenarioType,
    SimulationContext,
    coerce_number,
    normalize_assumptions,
)
from scenario_coach.models.results import (
    Recommendation,
    RecommendationPriority,
    VerificationResult,
)
from scenario_coach.models.reports import PassRecord, WhatIfChanges
from scenario_coach.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestContextModel:
    """Tests for SimulationContext."""

    def test_context_accepts_camel_case(self):
        """Test that collaborator-style camelCase keys are accepted."""
        context = SimulationContext.model_validate({
            "currentIncome": 4000,
            "currentExpenses": 3000,
            "currentSavings": 1000,
            "currentDebt": 200,
            "monthlyContributions": {"savings": 100, "debtPayment": 50},
        })
        assert context.current_income == 4000
        assert context.monthly_contributions.debt_payment == 50

    def test_context_rejects_negative_amounts(self):
        """Test that negative balances are rejected."""
        with pytest.raises(ValueError):
            SimulationContext(
                current_income=-1,
                current_expenses=0,
                current_savings=0,
                current_debt=0,
            )

    def test_context_rejects_infinite_amounts(self):
        """Test that non-finite amounts are rejected."""
        with pytest.raises(ValueError):
            SimulationContext(
                current_income=float("inf"),
                current_expenses=0,
                current_savings=0,
                current_debt=0,
            )

    @pytest.mark.parametrize("nested", [
        {"interestRates": {"savings": float("inf")}},
        {"interestRates": {"debt": float("nan")}},
        {"monthlyContributions": {"debtPayment": float("inf")}},
    ])
    def test_context_rejects_non_finite_rates_and_contributions(self, nested):
        """Test that nested rates and contributions must be finite too."""
        with pytest.raises(ValueError):
            SimulationContext.model_validate({
                "currentIncome": 4000,
                "currentExpenses": 3000,
                "currentSavings": 1000,
                "currentDebt": 200,
                **nested,
            })

    def test_context_is_immutable(self, context):
        """Test that the context cannot be modified in place."""
        with pytest.raises(ValueError):
            context.current_income = 1

    def test_derived_values(self, context):
        """Test starting net worth and monthly disposable income."""
        assert context.starting_net_worth == 5000
        assert context.monthly_disposable == 1500


class TestScenarioModel:
    """Tests for FinancialScenario."""

    def test_scenario_gets_unique_default_ids(self):
        """Test that scenarios without ids get distinct ones."""
        a = FinancialScenario(type="job_loss", name="A", timeframe_months=6)
        b = FinancialScenario(type="job_loss", name="B", timeframe_months=6)
        assert a.id != b.id

    def test_scenario_accepts_uppercase_enums(self):
        """Test that shouted enum values are normalized."""
        scenario = FinancialScenario(
            type="JOB_LOSS", name="Layoff", timeframe_months=6, impact="NEGATIVE"
        )
        assert scenario.type == ScenarioType.JOB_LOSS
        assert scenario.impact == ScenarioImpact.NEGATIVE

    def test_scenario_rejects_zero_timeframe(self):
        """Test that timeframe must be at least one month."""
        with pytest.raises(ValueError):
            FinancialScenario(type="job_loss", name="Layoff", timeframe_months=0)

    def test_scenario_rejects_probability_out_of_range(self):
        """Test probability must be between 0 and 1."""
        with pytest.raises(ValueError):
            FinancialScenario(
                type="job_loss", name="Layoff", timeframe_months=6, probability=1.5
            )

    def test_with_adjustments_only_touches_existing_keys(self):
        """Test that unknown adjustment keys are ignored, never inserted."""
        scenario = FinancialScenario(
            type="income_change",
            name="Raise",
            assumptions={"percentChange": 20},
            timeframe_months=12,
        )
        updated, applied, ignored = scenario.with_adjustments(
            {"percentChange": 5, "bonus": 1000}
        )
        assert updated.assumptions == {"percentChange": 5}
        assert applied == {"percentChange": 5}
        assert ignored == ["bonus"]
        # Original is untouched
        assert scenario.assumptions == {"percentChange": 20}

    def test_with_adjustments_without_matches_returns_same_scenario(self):
        """Test that nothing is copied when no key applies."""
        scenario = FinancialScenario(type="job_loss", name="Layoff", timeframe_months=6)
        updated, applied, ignored = scenario.with_adjustments({"cost": 10})
        assert updated is scenario
        assert applied == {}
        assert ignored == ["cost"]

    def test_with_adjustments_matches_either_spelling(self):
        """Test a camelCase correction lands on a snake_case key in place."""
        scenario = FinancialScenario(
            type="income_change",
            name="Raise",
            assumptions={"percent_change": 40},
            timeframe_months=12,
        )
        updated, applied, ignored = scenario.with_adjustments({"percentChange": 8})
        assert updated.assumptions == {"percent_change": 8}
        assert applied == {"percent_change": 8}
        assert ignored == []


class TestAssumptionNormalization:
    """Tests for the typed view of scenario assumptions."""

    def test_numeric_strings_are_coerced(self):
        """Test that '12%' and '$1,500' become numbers."""
        assert coerce_number("12%") == 12.0
        assert coerce_number("$1,500") == 1500.0
        assert coerce_number(" 3 ") == 3.0

    def test_unusable_values_are_rejected(self):
        """Test that text, booleans and NaN are not numbers."""
        assert coerce_number("a lot") is None
        assert coerce_number(True) is None
        assert coerce_number(float("nan")) is None

    def test_variant_matches_scenario_type(self):
        """Test that each type maps to its own variant."""
        typed = normalize_assumptions(ScenarioType.INCOME_CHANGE, {"percentChange": "15"})
        assert isinstance(typed, IncomeChangeAssumptions)
        assert typed.percent_change == 15.0

    def test_missing_or_textual_values_use_defaults(self):
        """Test that defaults fill in for absent or unparseable values."""
        typed = normalize_assumptions(ScenarioType.INCOME_CHANGE, {"percentChange": "big"})
        assert typed.percent_change == DEFAULT_PERCENT_CHANGE

        typed = normalize_assumptions(ScenarioType.EMERGENCY_EVENT, {})
        assert isinstance(typed, EmergencyEventAssumptions)
        assert typed.cost == DEFAULT_EMERGENCY_COST

    def test_foreign_keys_are_dropped_from_typed_view(self):
        """Test that keys of other variants do not leak in."""
        typed = normalize_assumptions(
            ScenarioType.JOB_LOSS, {"monthsUnemployed": 6, "percentChange": 50}
        )
        assert isinstance(typed, JobLossAssumptions)
        assert typed.months_unemployed == 6.0

    def test_snake_case_keys_are_accepted(self):
        """Test the field name works as well as the camelCase alias."""
        typed = normalize_assumptions(ScenarioType.INCOME_CHANGE, {"percent_change": 40})
        assert typed.percent_change == 40.0

        typed = normalize_assumptions(
            ScenarioType.INCOME_CHANGE, {"percent_change": 40, "percentChange": 25}
        )
        assert typed.percent_change == 25.0

    def test_goal_achievement_has_no_parameters(self):
        """Test that goal_achievement normalizes to an empty variant."""
        typed = normalize_assumptions(ScenarioType.GOAL_ACHIEVEMENT, {"anything": 1})
        assert isinstance(typed, GoalAchievementAssumptions)


class TestResultModels:
    """Tests for verification and recommendation models."""

    def test_verification_accepts_camel_case(self):
        """Test parsing a collaborator verdict."""
        verdict = VerificationResult.model_validate({
            "isValid": False,
            "issues": ["Raise too large"],
            "adjustments": {"percentChange": 5},
            "verificationScore": 0.4,
            "explanation": "Unrealistic raise",
        })
        assert verdict.is_valid is False
        assert verdict.adjustments == {"percentChange": 5.0}

    def test_verification_score_bounds(self):
        """Test verification score must be between 0 and 1."""
        with pytest.raises(ValueError):
            VerificationResult(is_valid=True, verification_score=1.2)

    def test_unavailable_verification_fails_open(self):
        """Test the fail-open default."""
        verdict = VerificationResult.unavailable()
        assert verdict.is_valid is True
        assert verdict.issues == []
        assert verdict.adjustments == {}
        assert verdict.verification_score == 0.5
        assert verdict.explanation == "verification unavailable"

    def test_recommendation_text(self):
        """Test recommendation rendering with and without priority."""
        rec = Recommendation(priority="HIGH", action="Pay the card", rationale="18% APR")
        assert rec.priority == RecommendationPriority.HIGH
        assert rec.to_text() == "[HIGH] Pay the card: 18% APR"
        assert Recommendation(action="Review expenses").to_text() == "Review expenses"

    def test_pass_record_counts_invalid(self):
        """Test PassRecord.invalid_count and all_valid."""
        record = PassRecord(
            pass_number=1,
            results=[],
            verifications=[
                VerificationResult(is_valid=True, verification_score=0.9),
                VerificationResult(is_valid=False, verification_score=0.2),
            ],
        )
        assert record.invalid_count == 1
        assert record.all_valid is False

    def test_what_if_changes_empty(self):
        """Test is_empty on default changes."""
        assert WhatIfChanges().is_empty is True
        assert WhatIfChanges(extra_savings=100).is_empty is False

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_what_if_changes_reject_non_finite(self, value):
        """Test that a NaN or infinite delta is rejected."""
        with pytest.raises(ValueError):
            WhatIfChanges.model_validate({"incomeChange": value})


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.LOOP_STARTED,
            description="Loop started",
        )
        assert event.event_type == AuditEventType.LOOP_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PASS_COMPLETED,
            description="Pass done",
            details={"pass_number": 1},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "pass_completed"
        assert log_dict["details"]["pass_number"] == 1

    def test_audit_event_builder_verification_failed(self):
        """Test AuditEventBuilder.verification_failed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.verification_failed(
            scenario_id="scenario_1",
            issues=["too optimistic"],
            score=0.3,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.VERIFICATION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "scenario_1"
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_loop_finished(self):
        """Test converged and non-converged loop events."""
        correlation_id = uuid4()
        done = AuditEventBuilder.loop_finished(True, 2, 0, 0.8, correlation_id)
        assert done.event_type == AuditEventType.LOOP_CONVERGED

        stuck = AuditEventBuilder.loop_finished(False, 3, 2, 0.4, correlation_id)
        assert stuck.event_type == AuditEventType.CONVERGENCE_NOT_REACHED
        assert stuck.severity == AuditSeverity.WARNING
        assert stuck.details["remaining_invalid"] == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
