"""
Data Models Package

This package contains all Pydantic models used in Scenario Coach.
All data flowing through the engine must conform to these schemas.
"""

from scenario_coach.models.scenario import (
    DebtPayoffAssumptions,
    EmergencyEventAssumptions,
    ExpenseReductionAssumptions,
    FinancialScenario,
    GoalAchievementAssumptions,
    IncomeChangeAssumptions,
    InflationImpactAssumptions,
    InterestRates,
    InvestmentGrowthAssumptions,
    JobLossAssumptions,
    MonthlyContributions,
    ScenarioAssumptions,
    ScenarioImpact,
    ScenarioType,
    SimulationContext,
    coerce_number,
    normalize_assumptions,
)
from scenario_coach.models.results import (
    Milestone,
    MonteCarloResult,
    ProjectedOutcome,
    Recommendation,
    RecommendationPriority,
    RecommendationRequest,
    ScenarioResult,
    ScenarioSummary,
    SimulationRun,
    VerificationResult,
)
from scenario_coach.models.reports import (
    AutonomousTestResult,
    PassRecord,
    ValidationIssue,
    WhatIfChanges,
    WhatIfImprovement,
    WhatIfResult,
)
from scenario_coach.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Scenario models
    "DebtPayoffAssumptions",
    "EmergencyEventAssumptions",
    "ExpenseReductionAssumptions",
    "FinancialScenario",
    "GoalAchievementAssumptions",
    "IncomeChangeAssumptions",
    "InflationImpactAssumptions",
    "InterestRates",
    "InvestmentGrowthAssumptions",
    "JobLossAssumptions",
    "MonthlyContributions",
    "ScenarioAssumptions",
    "ScenarioImpact",
    "ScenarioType",
    "SimulationContext",
    "coerce_number",
    "normalize_assumptions",
    # Result models
    "Milestone",
    "MonteCarloResult",
    "ProjectedOutcome",
    "Recommendation",
    "RecommendationPriority",
    "RecommendationRequest",
    "ScenarioResult",
    "ScenarioSummary",
    "SimulationRun",
    "VerificationResult",
    # Report models
    "AutonomousTestResult",
    "PassRecord",
    "ValidationIssue",
    "WhatIfChanges",
    "WhatIfImprovement",
    "WhatIfResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
