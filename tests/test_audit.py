"""Tests for the in-memory audit trail."""

from scenario_coach.audit import AuditLogger, create_correlation_id
from scenario_coach.models import AuditEventType, AuditSeverity


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_trail_filters_by_correlation_id(self):
        """Test that each request only sees its own events."""
        audit = AuditLogger()
        first, second = create_correlation_id(), create_correlation_id()

        audit.log_loop_started(3, 100, first)
        audit.log_loop_started(2, 50, second)
        audit.log_scenarios_generated(5, "fallback", first)

        trail = audit.trail(first)
        assert [e["event_type"] for e in trail] == [
            AuditEventType.LOOP_STARTED.value,
            AuditEventType.SCENARIOS_GENERATED.value,
        ]
        assert all(e["correlation_id"] == str(first) for e in trail)
        assert len(audit.trail()) == 3

    def test_oldest_events_are_dropped(self):
        audit = AuditLogger(max_events=2)
        correlation_id = create_correlation_id()
        for count in range(4):
            audit.log_recommendations(count, correlation_id)
        assert len(audit.events) == 2

    def test_adjustments_split_into_applied_and_ignored(self):
        """Test applied and ignored corrections become separate events."""
        audit = AuditLogger()
        correlation_id = create_correlation_id()

        audit.log_adjustments("s1", {"percentChange": 5.0}, ["bogusKey"], correlation_id)
        audit.log_adjustments("s2", {}, [], correlation_id)

        events = audit.events
        assert [e.event_type for e in events] == [
            AuditEventType.ADJUSTMENTS_APPLIED,
            AuditEventType.ADJUSTMENTS_IGNORED,
        ]
        assert events[1].severity == AuditSeverity.DEBUG

    def test_verification_failure_is_a_warning(self):
        audit = AuditLogger()
        audit.log_verification_failed("s1", ["too optimistic"], 0.2, create_correlation_id())
        assert audit.events[0].severity == AuditSeverity.WARNING
