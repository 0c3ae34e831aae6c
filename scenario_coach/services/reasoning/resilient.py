"""
Resilient Reasoning Service

DESIGN DECISION: Fail-open is a composition, not a pile of try/except
blocks in the orchestrator. This wrapper puts a timeout around every call
to the primary service and substitutes the fallback's answer when the
primary:
- takes longer than `timeout_seconds`
- raises (network errors, quota errors, ReasoningError subclasses)
- returns something unusable (no scenarios at all)

It never raises. Each substitution is logged, and recorded in the audit
trail when an AuditLogger is attached.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from scenario_coach.audit.logger import AuditLogger
from scenario_coach.models.reports import WhatIfChanges, WhatIfImprovement
from scenario_coach.models.results import (
    Recommendation,
    RecommendationRequest,
    ScenarioResult,
    VerificationResult,
)
from scenario_coach.models.scenario import FinancialScenario, SimulationContext
from scenario_coach.services.reasoning.interface import (
    MalformedResponseError,
    ReasoningService,
)
from scenario_coach.services.reasoning.offline import OfflineReasoningService

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 15.0


class ResilientReasoningService(ReasoningService):
    """
    Timeout + fallback wrapper around any ReasoningService.

    Usage:
        service = ResilientReasoningService(GeminiReasoningAgent(), timeout_seconds=15)
        verdict = await service.verify(context, scenario, result)  # never raises
    """

    def __init__(
        self,
        primary: ReasoningService,
        fallback: Optional[ReasoningService] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        audit_logger: Optional[AuditLogger] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self.primary = primary
        self.fallback = fallback or OfflineReasoningService()
        self.timeout_seconds = timeout_seconds
        self._audit = audit_logger
        self._correlation_id = correlation_id

    def for_request(
        self,
        audit_logger: Optional[AuditLogger],
        correlation_id: Optional[UUID],
    ) -> "ResilientReasoningService":
        """Copy of this wrapper that reports failures under one request."""
        return ResilientReasoningService(
            self.primary,
            self.fallback,
            self.timeout_seconds,
            audit_logger=audit_logger,
            correlation_id=correlation_id,
        )

    async def _call(
        self,
        operation: str,
        primary_call: Callable[[], Awaitable[T]],
        fallback_call: Callable[[], Awaitable[T]],
        accept: Callable[[T], bool] = lambda value: True,
    ) -> tuple[T, bool]:
        """
        Run `primary_call` under the timeout, `fallback_call` if it fails.

        Returns:
            (value, used_fallback)
        """
        try:
            value = await asyncio.wait_for(primary_call(), timeout=self.timeout_seconds)
            if not accept(value):
                raise MalformedResponseError(f"{operation} returned an unusable answer")
            return value, False
        except asyncio.TimeoutError:
            reason = f"timed out after {self.timeout_seconds:g}s"
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"

        logger.warning(
            "reasoning_fallback",
            operation=operation,
            reason=reason,
            correlation_id=str(self._correlation_id) if self._correlation_id else None,
        )
        if self._audit is not None:
            self._audit.log_collaborator_unavailable(operation, reason, self._correlation_id)

        return await fallback_call(), True

    async def generate_scenarios_with_source(
        self,
        context: SimulationContext,
        count: int,
    ) -> tuple[list[FinancialScenario], bool]:
        """Like generate_scenarios, but also reports whether the fallback answered."""
        return await self._call(
            "generate_scenarios",
            lambda: self.primary.generate_scenarios(context, count),
            lambda: self.fallback.generate_scenarios(context, count),
            accept=lambda scenarios: len(scenarios) > 0,
        )

    async def generate_scenarios(
        self,
        context: SimulationContext,
        count: int,
    ) -> list[FinancialScenario]:
        scenarios, _ = await self.generate_scenarios_with_source(context, count)
        return scenarios

    async def verify(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        result: ScenarioResult,
    ) -> VerificationResult:
        verdict, _ = await self._call(
            "verify",
            lambda: self.primary.verify(context, scenario, result),
            lambda: self.fallback.verify(context, scenario, result),
        )
        return verdict

    async def summarize_recommendations(
        self,
        context: SimulationContext,
        request: RecommendationRequest,
    ) -> list[Recommendation]:
        recommendations, _ = await self._call(
            "summarize_recommendations",
            lambda: self.primary.summarize_recommendations(context, request),
            lambda: self.fallback.summarize_recommendations(context, request),
            accept=lambda items: len(items) > 0,
        )
        return recommendations

    async def analyze_what_if(
        self,
        context: SimulationContext,
        changes: WhatIfChanges,
        improvement: WhatIfImprovement,
        timeframe_months: int,
    ) -> str:
        analysis, _ = await self._call(
            "analyze_what_if",
            lambda: self.primary.analyze_what_if(context, changes, improvement, timeframe_months),
            lambda: self.fallback.analyze_what_if(context, changes, improvement, timeframe_months),
            accept=lambda text: bool(text and text.strip()),
        )
        return analysis
