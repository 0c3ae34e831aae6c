"""
Audit Models for Scenario Coach

Every significant step of a simulation request is recorded as an event:
1. Which scenarios were tested and where they came from
2. What each verification pass found
3. Which corrections were applied or ignored
4. When the reasoning collaborator was unavailable

DESIGN DECISION: Audit events are append-only and kept in memory for the
lifetime of one request. Nothing is persisted; the trail is returned to the
caller and written to the structured log.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Refinement loop
    LOOP_STARTED = "loop_started"
    SCENARIOS_GENERATED = "scenarios_generated"
    PASS_COMPLETED = "pass_completed"
    VERIFICATION_FAILED = "verification_failed"
    ADJUSTMENTS_APPLIED = "adjustments_applied"
    ADJUSTMENTS_IGNORED = "adjustments_ignored"
    LOOP_CONVERGED = "loop_converged"
    CONVERGENCE_NOT_REACHED = "convergence_not_reached"
    RECOMMENDATIONS_GENERATED = "recommendations_generated"

    # Simulation
    SIMULATION_COMPLETED = "simulation_completed"
    WHAT_IF_COMPLETED = "what_if_completed"

    # System events
    COLLABORATOR_UNAVAILABLE = "collaborator_unavailable"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant step creates one of these.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)",
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about? (e.g. 'scenario', 'loop', 'what_if')
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one request",
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.loop_started(max_passes, correlation_id)
        event = AuditEventBuilder.pass_completed(2, 5, 1, correlation_id)
    """

    @staticmethod
    def loop_started(
        max_passes: int,
        iterations: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOOP_STARTED,
            entity_type="loop",
            correlation_id=correlation_id,
            description=f"Autonomous testing started (budget {max_passes} passes)",
            details={"max_passes": max_passes, "iterations": iterations},
        )

    @staticmethod
    def scenarios_generated(
        count: int,
        source: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCENARIOS_GENERATED,
            entity_type="loop",
            correlation_id=correlation_id,
            description=f"{count} scenarios obtained from {source}",
            details={"count": count, "source": source},
        )

    @staticmethod
    def pass_completed(
        pass_number: int,
        scenario_count: int,
        invalid_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASS_COMPLETED,
            entity_type="loop",
            correlation_id=correlation_id,
            description=(
                f"Pass {pass_number}: {scenario_count - invalid_count}/"
                f"{scenario_count} projections verified"
            ),
            details={
                "pass_number": pass_number,
                "scenario_count": scenario_count,
                "invalid_count": invalid_count,
            },
        )

    @staticmethod
    def verification_failed(
        scenario_id: str,
        issues: list[str],
        score: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VERIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="scenario",
            entity_id=scenario_id,
            correlation_id=correlation_id,
            description=f"Projection failed verification with {len(issues)} issues",
            details={"issues": issues, "verification_score": score},
        )

    @staticmethod
    def adjustments_applied(
        scenario_id: str,
        applied: dict[str, float],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADJUSTMENTS_APPLIED,
            entity_type="scenario",
            entity_id=scenario_id,
            correlation_id=correlation_id,
            description=f"Self-corrected {len(applied)} assumptions",
            details={"applied": applied},
        )

    @staticmethod
    def adjustments_ignored(
        scenario_id: str,
        keys: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADJUSTMENTS_IGNORED,
            severity=AuditSeverity.DEBUG,
            entity_type="scenario",
            entity_id=scenario_id,
            correlation_id=correlation_id,
            description=f"Ignored {len(keys)} adjustments for unknown assumptions",
            details={"keys": keys},
        )

    @staticmethod
    def loop_finished(
        converged: bool,
        passes_run: int,
        remaining_invalid: int,
        confidence: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        if converged:
            return AuditEvent(
                event_type=AuditEventType.LOOP_CONVERGED,
                entity_type="loop",
                correlation_id=correlation_id,
                description=f"All projections verified after {passes_run} passes",
                details={"passes_run": passes_run, "confidence_score": confidence},
            )
        return AuditEvent(
            event_type=AuditEventType.CONVERGENCE_NOT_REACHED,
            severity=AuditSeverity.WARNING,
            entity_type="loop",
            correlation_id=correlation_id,
            description=(
                f"Pass budget exhausted with {remaining_invalid} "
                f"unverified projections"
            ),
            details={
                "passes_run": passes_run,
                "remaining_invalid": remaining_invalid,
                "confidence_score": confidence,
            },
        )

    @staticmethod
    def recommendations_generated(
        count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATIONS_GENERATED,
            entity_type="loop",
            correlation_id=correlation_id,
            description=f"{count} recommendations produced",
            details={"count": count},
        )

    @staticmethod
    def simulation_completed(
        scenario_id: str,
        iterations: int,
        mean: float,
        probability_of_success: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIMULATION_COMPLETED,
            severity=AuditSeverity.DEBUG,
            entity_type="scenario",
            entity_id=scenario_id,
            correlation_id=correlation_id,
            description=f"Monte Carlo run of {iterations} iterations completed",
            details={
                "iterations": iterations,
                "mean": round(mean, 2),
                "probability_of_success": probability_of_success,
            },
        )

    @staticmethod
    def what_if_completed(
        timeframe_months: int,
        net_worth_difference: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WHAT_IF_COMPLETED,
            entity_type="what_if",
            correlation_id=correlation_id,
            description=f"What-if comparison over {timeframe_months} months completed",
            details={
                "timeframe_months": timeframe_months,
                "net_worth_difference": round(net_worth_difference, 2),
            },
        )

    @staticmethod
    def collaborator_unavailable(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLABORATOR_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="reasoning_service",
            correlation_id=correlation_id,
            description=f"Reasoning service unavailable for {operation}; using fallback",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
