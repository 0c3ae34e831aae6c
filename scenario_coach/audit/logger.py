"""
Audit Logger

DESIGN DECISION: Every significant step of a simulation request is logged.
This provides:
1. Complete traceability of what the refinement loop did and why
2. Debugging capability when the reasoning collaborator misbehaves
3. An activity trail the UI can show next to the results

The audit logger:
- Never raises (logging must not break a simulation)
- Keeps the trail in memory only; nothing is persisted
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from scenario_coach.models.audit import AuditEvent, AuditEventBuilder


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog (JSON lines) on top of stdlib logging."""
    logging.basicConfig(format="%(message)s")
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory trail returned with the request's result
    """

    def __init__(self, max_events: int = 1000):
        self._logger = structlog.get_logger("scenario_coach.audit")
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def trail(self, correlation_id: Optional[UUID] = None) -> list[dict]:
        """Log dictionaries for one request (or all events if no ID given)."""
        return [
            e.to_log_dict()
            for e in self._events
            if correlation_id is None or e.correlation_id == correlation_id
        ]

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and append it to the trail."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._events.append(event)
        if len(self._events) > self._max_events:
            del self._events[: len(self._events) - self._max_events]

    def log_loop_started(self, max_passes: int, iterations: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.loop_started(max_passes, iterations, correlation_id))

    def log_scenarios_generated(self, count: int, source: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.scenarios_generated(count, source, correlation_id))

    def log_pass_completed(
        self,
        pass_number: int,
        scenario_count: int,
        invalid_count: int,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.pass_completed(
            pass_number, scenario_count, invalid_count, correlation_id
        ))

    def log_verification_failed(
        self,
        scenario_id: str,
        issues: list[str],
        score: float,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.verification_failed(scenario_id, issues, score, correlation_id))

    def log_adjustments(
        self,
        scenario_id: str,
        applied: dict[str, float],
        ignored: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log applied and ignored corrections for one scenario."""
        if applied:
            self.log(AuditEventBuilder.adjustments_applied(scenario_id, applied, correlation_id))
        if ignored:
            self.log(AuditEventBuilder.adjustments_ignored(scenario_id, ignored, correlation_id))

    def log_loop_finished(
        self,
        converged: bool,
        passes_run: int,
        remaining_invalid: int,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.loop_finished(
            converged, passes_run, remaining_invalid, confidence, correlation_id
        ))

    def log_recommendations(self, count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.recommendations_generated(count, correlation_id))

    def log_simulation_completed(
        self,
        scenario_id: str,
        iterations: int,
        mean: float,
        probability_of_success: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.simulation_completed(
            scenario_id, iterations, mean, probability_of_success, correlation_id
        ))

    def log_what_if_completed(
        self,
        timeframe_months: int,
        net_worth_difference: float,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.what_if_completed(
            timeframe_months, net_worth_difference, correlation_id
        ))

    def log_collaborator_unavailable(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.collaborator_unavailable(
            operation, error_message, correlation_id
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type, error_message, details, correlation_id
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new request (e.g. one autonomous test run).
    Pass it through all subsequent operations.
    """
    return uuid4()
