"""
Main Orchestrator for Scenario Coach

This module ties together all the components and defines the
end-to-end flows for:
1. Monte Carlo (context + scenario → distribution)
2. Autonomous testing (generate → simulate → verify → self-correct → recommend)
3. What-if (baseline vs. modified context → improvement → analysis)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Numbers come only from the Monte Carlo engine
- Reasoning failures never surface as errors (fail-open)
- Assumptions are rewritten only between passes, after every
  verification of the pass has returned
- Every step is audited

This is the "glue" that ensures the system works correctly
even when the reasoning service behaves unexpectedly.
"""

import asyncio
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Any, Optional, Sequence, Union

import numpy as np
import structlog
from pydantic import BaseModel, ValidationError

from scenario_coach.agents import GeminiReasoningAgent
from scenario_coach.audit import AuditLogger, configure_logging, create_correlation_id
from scenario_coach.config import get_settings
from scenario_coach.config.settings import SimulationSettings
from scenario_coach.engine import (
    InvalidInputError,
    analyze_scenario,
    make_rng,
    run_monte_carlo,
)
from scenario_coach.models.reports import (
    AutonomousTestResult,
    PassRecord,
    WhatIfChanges,
    WhatIfImprovement,
    WhatIfResult,
)
from scenario_coach.models.results import (
    MonteCarloResult,
    RecommendationRequest,
    ScenarioResult,
    ScenarioSummary,
    VerificationResult,
)
from scenario_coach.models.scenario import (
    FinancialScenario,
    MonthlyContributions,
    ScenarioImpact,
    ScenarioType,
    SimulationContext,
)
from scenario_coach.services.reasoning import (
    OfflineReasoningService,
    ReasoningService,
    ResilientReasoningService,
)
from scenario_coach.validation import InputValidator

logger = structlog.get_logger(__name__)

ContextInput = Union[SimulationContext, dict[str, Any]]
ScenarioInput = Union[FinancialScenario, dict[str, Any]]


def _build(model: type[BaseModel], value: Any) -> Any:
    """Validate caller input into `model`; schema errors become InvalidInputError."""
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {model.__name__}: {e}") from e


def _make_executor(max_workers: int) -> Optional[Executor]:
    return ProcessPoolExecutor(max_workers=max_workers) if max_workers > 0 else None


class SimulationRunner:
    """
    Shared simulate-then-analyze step used by every flow.

    Holds an optional executor for Monte Carlo iterations. With none given,
    `max_workers` from the settings decides whether a process pool is
    created for each request.
    """

    def __init__(
        self,
        settings: Optional[SimulationSettings] = None,
        executor: Optional[Executor] = None,
    ):
        self._settings = settings or get_settings().simulation
        self._executor = executor

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    def new_rng(self, seed: Optional[int] = None) -> np.random.Generator:
        return make_rng(seed if seed is not None else self._settings.random_seed)

    def acquire_executor(self) -> tuple[Optional[Executor], bool]:
        """(executor, owned): owned executors are shut down by the caller."""
        if self._executor is not None:
            return self._executor, False
        executor = _make_executor(self._settings.max_workers)
        return executor, executor is not None

    def simulate(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        iterations: int,
        rng: np.random.Generator,
        executor: Optional[Executor] = None,
    ) -> MonteCarloResult:
        return run_monte_carlo(context, scenario, iterations, rng=rng, executor=executor)

    def simulate_and_analyze(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        iterations: int,
        rng: np.random.Generator,
        executor: Optional[Executor] = None,
    ) -> ScenarioResult:
        simulation = self.simulate(context, scenario, iterations, rng, executor)
        return analyze_scenario(context, scenario, simulation)

    async def simulate_many(
        self,
        context: SimulationContext,
        scenarios: Sequence[FinancialScenario],
        iterations: int,
        rng: np.random.Generator,
        executor: Optional[Executor] = None,
    ) -> list[ScenarioResult]:
        """
        Simulate and analyze scenarios concurrently, off the event loop.

        Each scenario gets its own child generator spawned in order, so
        results match their scenarios and a fixed seed stays reproducible.
        """
        children = rng.spawn(len(scenarios))
        return list(await asyncio.gather(*(
            asyncio.to_thread(
                self.simulate_and_analyze, context, scenario, iterations, child, executor
            )
            for scenario, child in zip(scenarios, children)
        )))


class MonteCarloFlow:
    """
    Orchestrates a single Monte Carlo run.

    Flow:
    1. Validate → iterations and timeframe
    2. Simulate → N independent paths
    3. Summarize → distribution statistics
    """

    def __init__(
        self,
        runner: Optional[SimulationRunner] = None,
        validator: Optional[InputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._runner = runner or SimulationRunner()
        self._validator = validator or InputValidator()
        self._audit = audit_logger or AuditLogger()

    def run(
        self,
        context: ContextInput,
        scenario: ScenarioInput,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> MonteCarloResult:
        """
        Simulate one scenario.

        Raises:
            InvalidInputError: Malformed context or scenario, iterations < 1
        """
        context = _build(SimulationContext, context)
        scenario = _build(FinancialScenario, scenario)
        iterations = iterations if iterations is not None else self._runner.settings.default_iterations
        self._validator.check_request(
            iterations=iterations,
            timeframe_months=scenario.timeframe_months,
        )

        executor, owned = self._runner.acquire_executor()
        try:
            result = self._runner.simulate(
                context, scenario, iterations, self._runner.new_rng(seed), executor
            )
        finally:
            if owned:
                executor.shutdown()

        self._audit.log_simulation_completed(
            scenario.id, iterations, result.mean, result.probability_of_success
        )
        return result


class AutonomousTestingFlow:
    """
    Orchestrates the autonomous refinement loop.

    Flow:
    1. Generate → scenarios from the reasoning service (first pass only)
    2. Simulate → every scenario, every pass
    3. Verify → all scenarios of the pass concurrently
    4. Self-correct → copy adjustments onto existing assumption keys
    5. Repeat 2-4 until every projection verifies or the budget runs out
    6. Recommend → closing recommendation set

    Not converging is a normal outcome, reported in the result.
    """

    def __init__(
        self,
        reasoning_service: Optional[ReasoningService] = None,
        runner: Optional[SimulationRunner] = None,
        validator: Optional[InputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._runner = runner or SimulationRunner()
        self._reasoning = _ensure_resilient(
            reasoning_service, self._runner.settings.collaborator_timeout_seconds
        )
        self._validator = validator or InputValidator()
        self._audit = audit_logger or AuditLogger()

    async def run(
        self,
        context: ContextInput,
        max_iterations: Optional[int] = None,
        scenarios: Optional[Sequence[ScenarioInput]] = None,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> AutonomousTestResult:
        """
        Run the loop.

        Args:
            context: Current financial state
            max_iterations: Pass budget (defaults to settings.max_passes)
            scenarios: Scenarios to test; skips generation when given
            iterations: Monte Carlo iterations per scenario
            seed: Fixed seed for reproducible simulations

        Raises:
            InvalidInputError: Malformed input or a pass budget below 1
        """
        settings = self._runner.settings
        context = _build(SimulationContext, context)
        supplied = None
        if scenarios is not None:
            supplied = [_build(FinancialScenario, s) for s in scenarios]
        max_passes = max_iterations if max_iterations is not None else settings.max_passes
        iterations = iterations if iterations is not None else settings.default_iterations

        self._validator.check_request(
            iterations=iterations,
            max_passes=max_passes,
            scenarios=supplied,
        )
        input_warnings = self._validator.review_context(context)

        correlation_id = create_correlation_id()
        service = self._reasoning.for_request(self._audit, correlation_id)
        self._audit.log_loop_started(max_passes, iterations, correlation_id)

        if supplied is not None:
            current, source = supplied, "supplied"
        else:
            current, used_fallback = await service.generate_scenarios_with_source(
                context, settings.scenario_count
            )
            source = "fallback" if used_fallback else "collaborator"
        self._audit.log_scenarios_generated(len(current), source, correlation_id)

        rng = self._runner.new_rng(seed)
        passes: list[PassRecord] = []

        executor, owned = self._runner.acquire_executor()
        try:
            for pass_number in range(1, max_passes + 1):
                results = await self._runner.simulate_many(
                    context, current, iterations, rng, executor
                )

                # Write barrier: nothing is adjusted until every verdict is in
                verifications = list(await asyncio.gather(*(
                    service.verify(context, s, r) for s, r in zip(current, results)
                )))

                record = PassRecord(
                    pass_number=pass_number,
                    results=results,
                    verifications=verifications,
                )
                for scenario, verdict in zip(current, verifications):
                    if not verdict.is_valid:
                        self._audit.log_verification_failed(
                            scenario.id, verdict.issues,
                            verdict.verification_score, correlation_id,
                        )
                self._audit.log_pass_completed(
                    pass_number, len(current), record.invalid_count, correlation_id
                )
                passes.append(record)

                if record.all_valid or pass_number == max_passes:
                    break

                current = self._apply_adjustments(current, verifications, record, correlation_id)
        except Exception as e:
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"passes_completed": len(passes)},
                correlation_id=correlation_id,
            )
            raise
        finally:
            if owned:
                executor.shutdown()

        final = passes[-1]
        confidence = (
            sum(v.verification_score for v in final.verifications) / len(final.verifications)
            if final.verifications else 0.0
        )
        self._audit.log_loop_finished(
            final.all_valid, len(passes), final.invalid_count, confidence, correlation_id
        )

        request = build_recommendation_request(current, final.results, final.verifications)
        recommendations = await service.summarize_recommendations(context, request)
        self._audit.log_recommendations(len(recommendations), correlation_id)

        return AutonomousTestResult(
            scenarios=current,
            results=final.results,
            verifications=final.verifications,
            passes=passes,
            recommendations=recommendations,
            confidence_score=confidence,
            converged=final.all_valid,
            remaining_invalid=final.invalid_count,
            scenario_source=source,
            input_warnings=input_warnings,
            correlation_id=correlation_id,
            activity_log=self._audit.trail(correlation_id),
        )

    def _apply_adjustments(
        self,
        scenarios: list[FinancialScenario],
        verifications: list[VerificationResult],
        record: PassRecord,
        correlation_id,
    ) -> list[FinancialScenario]:
        """Adjusted copies of failed scenarios; valid ones pass through unchanged."""
        adjusted = []
        for scenario, verdict in zip(scenarios, verifications):
            if verdict.is_valid:
                adjusted.append(scenario)
                continue

            updated, applied, ignored = scenario.with_adjustments(verdict.adjustments)
            if applied:
                record.applied_adjustments[scenario.id] = applied
            if ignored:
                record.ignored_adjustments[scenario.id] = ignored
            self._audit.log_adjustments(scenario.id, applied, ignored, correlation_id)
            adjusted.append(updated)
        return adjusted


def build_recommendation_request(
    scenarios: Sequence[FinancialScenario],
    results: Sequence[ScenarioResult],
    verifications: Sequence[VerificationResult],
) -> RecommendationRequest:
    """
    Digest of the final pass for the recommendation call.

    Ties go to the scenario that comes first.
    """
    summaries = [
        ScenarioSummary(
            name=s.name,
            type=s.type,
            impact=s.impact,
            risk_score=r.risk_score,
            confidence=r.confidence_level,
            verified=v.is_valid,
        )
        for s, r, v in zip(scenarios, results, verifications)
    ]

    highest_risk = None
    if summaries:
        highest_risk = max(summaries, key=lambda s: s.risk_score).name

    positives = [s for s in summaries if s.impact == ScenarioImpact.POSITIVE]
    most_confident_positive = None
    if positives:
        most_confident_positive = max(positives, key=lambda s: s.confidence).name

    return RecommendationRequest(
        scenarios=summaries,
        highest_risk_scenario=highest_risk,
        most_confident_positive_scenario=most_confident_positive,
        remaining_issue_count=sum(1 for v in verifications if not v.is_valid),
    )


class WhatIfFlow:
    """
    Orchestrates the what-if comparison.

    Flow:
    1. Baseline → current context, no perturbation
    2. Modified → context shifted by the proposed monthly deltas
    3. Compare → savings, debt, net worth and runway differences
    4. Explain → short analysis from the reasoning service
    """

    def __init__(
        self,
        reasoning_service: Optional[ReasoningService] = None,
        runner: Optional[SimulationRunner] = None,
        validator: Optional[InputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._runner = runner or SimulationRunner()
        self._reasoning = _ensure_resilient(
            reasoning_service, self._runner.settings.collaborator_timeout_seconds
        )
        self._validator = validator or InputValidator()
        self._audit = audit_logger or AuditLogger()

    async def run(
        self,
        context: ContextInput,
        changes: Union[WhatIfChanges, dict[str, Any]],
        timeframe_months: int = 12,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> WhatIfResult:
        """
        Compare the current trajectory with the proposed changes.

        Raises:
            InvalidInputError: Malformed input, timeframe < 1
        """
        context = _build(SimulationContext, context)
        changes = _build(WhatIfChanges, changes)
        iterations = iterations if iterations is not None else self._runner.settings.default_iterations
        self._validator.check_request(iterations=iterations, timeframe_months=timeframe_months)

        correlation_id = create_correlation_id()
        service = self._reasoning.for_request(self._audit, correlation_id)

        baseline_scenario = FinancialScenario(
            id="baseline",
            type=ScenarioType.GOAL_ACHIEVEMENT,
            name="Current Trajectory",
            description="Projection based on current financial habits",
            timeframe_months=timeframe_months,
            probability=0.9,
            impact=ScenarioImpact.NEUTRAL,
        )
        modified_scenario = FinancialScenario(
            id="modified",
            type=ScenarioType.GOAL_ACHIEVEMENT,
            name="With Proposed Changes",
            description="Projection with proposed financial changes",
            timeframe_months=timeframe_months,
            probability=0.85,
            impact=ScenarioImpact.POSITIVE,
        )
        modified_context = apply_changes(context, changes)

        baseline_rng, modified_rng = self._runner.new_rng(seed).spawn(2)
        executor, owned = self._runner.acquire_executor()
        try:
            baseline, with_changes = await asyncio.gather(
                asyncio.to_thread(
                    self._runner.simulate_and_analyze,
                    context, baseline_scenario, iterations, baseline_rng, executor,
                ),
                asyncio.to_thread(
                    self._runner.simulate_and_analyze,
                    modified_context, modified_scenario, iterations, modified_rng, executor,
                ),
            )
        except Exception as e:
            self._audit.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        finally:
            if owned:
                executor.shutdown()

        improvement = compare_outcomes(baseline, with_changes)
        analysis = await service.analyze_what_if(
            context, changes, improvement, timeframe_months
        )
        self._audit.log_what_if_completed(
            timeframe_months, improvement.net_worth_difference, correlation_id
        )

        return WhatIfResult(
            baseline=baseline,
            with_changes=with_changes,
            improvement=improvement,
            analysis=analysis,
            timeframe_months=timeframe_months,
        )


def apply_changes(context: SimulationContext, changes: WhatIfChanges) -> SimulationContext:
    """Shift income, expenses and contributions by the deltas, never below 0."""
    contributions = context.monthly_contributions
    return context.model_copy(update={
        "current_income": max(0.0, context.current_income + changes.income_change),
        "current_expenses": max(0.0, context.current_expenses + changes.expense_change),
        "monthly_contributions": MonthlyContributions(
            savings=max(0.0, contributions.savings + changes.extra_savings),
            debt_payment=max(0.0, contributions.debt_payment + changes.extra_debt_payment),
        ),
    })


def compare_outcomes(baseline: ScenarioResult, with_changes: ScenarioResult) -> WhatIfImprovement:
    """with_changes minus baseline; debt as a reduction."""
    before = baseline.projected_outcome
    after = with_changes.projected_outcome
    return WhatIfImprovement(
        savings_difference=after.final_savings - before.final_savings,
        debt_difference=before.final_debt - after.final_debt,
        net_worth_difference=after.net_worth - before.net_worth,
        runway_difference=after.emergency_runway_months - before.emergency_runway_months,
    )


# =============================================================================
# FACTORIES AND ENTRY POINTS
# =============================================================================

def _ensure_resilient(
    service: Optional[ReasoningService],
    timeout_seconds: float,
) -> ResilientReasoningService:
    if isinstance(service, ResilientReasoningService):
        return service
    return ResilientReasoningService(
        service or default_reasoning_service(),
        timeout_seconds=timeout_seconds,
    )


def default_reasoning_service() -> ReasoningService:
    """Gemini when it is configured, the offline service otherwise."""
    try:
        return GeminiReasoningAgent()
    except Exception as e:
        # Gemini not configured - continue with offline defaults
        logger.warning("gemini_not_configured", error=str(e))
        return OfflineReasoningService()


def create_app_components(
    use_gemini: bool = True,
) -> tuple[MonteCarloFlow, AutonomousTestingFlow, WhatIfFlow]:
    """
    Factory function to create all application components.

    Args:
        use_gemini: Whether to try the Gemini reasoning service.
                    Set to False for offline use and testing.

    Returns:
        (monte_carlo_flow, autonomous_flow, what_if_flow)
    """
    configure_logging(get_settings().app.log_level)

    settings = get_settings().simulation
    audit_logger = AuditLogger()
    runner = SimulationRunner(settings)

    primary = default_reasoning_service() if use_gemini else OfflineReasoningService()
    reasoning = ResilientReasoningService(
        primary,
        timeout_seconds=settings.collaborator_timeout_seconds,
    )

    monte_carlo_flow = MonteCarloFlow(runner=runner, audit_logger=audit_logger)
    autonomous_flow = AutonomousTestingFlow(
        reasoning_service=reasoning,
        runner=runner,
        audit_logger=audit_logger,
    )
    what_if_flow = WhatIfFlow(
        reasoning_service=reasoning,
        runner=runner,
        audit_logger=audit_logger,
    )

    return monte_carlo_flow, autonomous_flow, what_if_flow


async def run_autonomous_testing_loop(
    context: ContextInput,
    max_iterations: Optional[int] = None,
    scenarios: Optional[Sequence[ScenarioInput]] = None,
    reasoning_service: Optional[ReasoningService] = None,
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    settings: Optional[SimulationSettings] = None,
) -> AutonomousTestResult:
    """Generate, simulate, verify and self-correct scenarios for `context`."""
    flow = AutonomousTestingFlow(
        reasoning_service=reasoning_service,
        runner=SimulationRunner(settings),
    )
    return await flow.run(
        context,
        max_iterations=max_iterations,
        scenarios=scenarios,
        iterations=iterations,
        seed=seed,
    )


async def run_what_if_analysis(
    context: ContextInput,
    changes: Union[WhatIfChanges, dict[str, Any]],
    timeframe_months: int = 12,
    reasoning_service: Optional[ReasoningService] = None,
    iterations: Optional[int] = None,
    seed: Optional[int] = None,
    settings: Optional[SimulationSettings] = None,
) -> WhatIfResult:
    """Compare the current trajectory against the proposed monthly changes."""
    flow = WhatIfFlow(
        reasoning_service=reasoning_service,
        runner=SimulationRunner(settings),
    )
    return await flow.run(
        context, changes, timeframe_months, iterations=iterations, seed=seed
    )


def run_monte_carlo_simulation(
    context: ContextInput,
    scenario: ScenarioInput,
    iterations: int = 1000,
    seed: Optional[int] = None,
    executor: Optional[Executor] = None,
    settings: Optional[SimulationSettings] = None,
) -> MonteCarloResult:
    """Simulate one scenario `iterations` times."""
    flow = MonteCarloFlow(runner=SimulationRunner(settings, executor=executor))
    return flow.run(context, scenario, iterations=iterations, seed=seed)
