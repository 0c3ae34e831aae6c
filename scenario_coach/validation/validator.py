"""
Two-Stage Input Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - REQUEST VALIDATION:
- Timeframe, iteration count and pass budget must be at least 1
- Scenarios must have unique ids
- Fails fast with InvalidInputError; nothing is simulated

STAGE 2 - SEMANTIC CHECKS:
- Expenses above income
- Outstanding debt with no scheduled payment
- Zero expenses (runway is reported at its cap)
- These are observations, not errors. The simulation still runs and the
  issues are returned next to the results.

IMPORTANT: Validation NEVER silently fixes the caller's input.
"""

from typing import Optional, Sequence

from scenario_coach.engine.errors import InvalidInputError, InvalidScenarioError
from scenario_coach.models.reports import ValidationIssue
from scenario_coach.models.scenario import FinancialScenario, SimulationContext


class InputValidator:
    """
    Validates simulation requests through a two-stage pipeline.

    Stage 1: Request checks (raise)
    Stage 2: Semantic checks (report)
    """

    def check_request(
        self,
        iterations: Optional[int] = None,
        max_passes: Optional[int] = None,
        timeframe_months: Optional[int] = None,
        scenarios: Optional[Sequence[FinancialScenario]] = None,
    ) -> None:
        """
        Stage 1: Fail fast on requests the engine cannot run.

        Raises:
            InvalidInputError: Bad counts or pass budget
            InvalidScenarioError: Bad timeframe or duplicate scenario ids
        """
        if iterations is not None and iterations < 1:
            raise InvalidInputError(f"iterations must be >= 1, got {iterations}")
        if max_passes is not None and max_passes < 1:
            raise InvalidInputError(f"max_iterations must be >= 1, got {max_passes}")
        if timeframe_months is not None and timeframe_months < 1:
            raise InvalidScenarioError(
                f"timeframe_months must be >= 1, got {timeframe_months}"
            )

        if scenarios is not None:
            seen: set[str] = set()
            for scenario in scenarios:
                if scenario.id in seen:
                    raise InvalidScenarioError(f"Duplicate scenario id: {scenario.id}")
                seen.add(scenario.id)

    def review_context(self, context: SimulationContext) -> list[ValidationIssue]:
        """
        Stage 2: Describe conditions that make results harder to read.

        Returns: list of warnings (possibly empty)
        """
        issues = []

        if context.current_expenses > context.current_income:
            shortfall = context.current_expenses - context.current_income
            issues.append(ValidationIssue(
                field="current_expenses",
                issue_type="negative_cash_flow",
                message=(
                    f"Monthly expenses exceed income by ${shortfall:,.2f}; "
                    f"every scenario starts from a shortfall"
                ),
                suggested_fix="Double-check income and expense figures",
            ))

        if context.current_debt > 0 and context.monthly_contributions.debt_payment == 0:
            issues.append(ValidationIssue(
                field="monthly_contributions.debt_payment",
                issue_type="no_debt_payment",
                message="There is outstanding debt but no monthly debt payment",
                suggested_fix="Enter the minimum payment if one applies",
            ))

        if context.current_expenses == 0:
            issues.append(ValidationIssue(
                field="current_expenses",
                issue_type="zero_expenses",
                message="Monthly expenses are zero, so emergency runway is reported at its cap",
            ))

        return issues

    @staticmethod
    def get_user_friendly_summary(issues: list[ValidationIssue]) -> str:
        """Bullet list of issues for display."""
        if not issues:
            return "✅ No issues found with the inputs."
        lines = ["⚠️ **Please review:**"]
        for issue in issues:
            line = f"- {issue.message}"
            if issue.suggested_fix:
                line += f" ({issue.suggested_fix})"
            lines.append(line)
        return "\n".join(lines)
