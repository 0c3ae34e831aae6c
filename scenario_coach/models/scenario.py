"""
Scenario Models for Scenario Coach

These models define the inputs of every simulation:
1. The user's current financial state (SimulationContext)
2. A hypothesized future (FinancialScenario)
3. The typed, defaulted view of a scenario's assumptions

DESIGN DECISION: Scenarios arrive from an external reasoning service as
loosely typed JSON. The raw `assumptions` mapping is kept as received so the
self-correction step can tell which keys are actually present, and a
normalization step turns it into one typed variant per scenario type for the
simulator to read.
"""

import math
import re
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class ScenarioType(str, Enum):
    """
    Closed set of futures the engine knows how to simulate.

    Each type has exactly one perturbation rule in the single-path simulator.
    """
    INCOME_CHANGE = "income_change"
    EXPENSE_REDUCTION = "expense_reduction"
    DEBT_PAYOFF = "debt_payoff"
    INVESTMENT_GROWTH = "investment_growth"
    EMERGENCY_EVENT = "emergency_event"
    GOAL_ACHIEVEMENT = "goal_achievement"
    INFLATION_IMPACT = "inflation_impact"
    JOB_LOSS = "job_loss"


class ScenarioImpact(str, Enum):
    """Expected direction of a scenario's effect on net worth."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class CamelModel(BaseModel):
    """Base for models that also accept camelCase keys from JSON payloads."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# FINANCIAL CONTEXT
# =============================================================================

def require_finite(v: float) -> float:
    """Reject NaN and infinities, which pydantic floats accept by default."""
    if not math.isfinite(v):
        raise ValueError("Amounts must be finite numbers")
    return v


class InterestRates(CamelModel):
    """Annual interest rates in percent."""
    model_config = ConfigDict(frozen=True)

    savings: float = Field(default=0.0, ge=0, description="Annual savings yield (%)")
    debt: float = Field(default=0.0, ge=0, description="Annual debt APR (%)")

    @field_validator("savings", "debt")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        return require_finite(v)


class MonthlyContributions(CamelModel):
    """Amounts the user puts toward savings and debt every month."""
    model_config = ConfigDict(frozen=True)

    savings: float = Field(default=0.0, ge=0)
    debt_payment: float = Field(default=0.0, ge=0)

    @field_validator("savings", "debt_payment")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        return require_finite(v)


class SimulationContext(CamelModel):
    """
    The user's current financial state.

    Immutable: what-if analysis builds a modified copy with
    `model_copy(update=...)` instead of changing this one.
    """
    model_config = ConfigDict(frozen=True)

    current_income: float = Field(..., ge=0, description="Monthly income")
    current_expenses: float = Field(..., ge=0, description="Monthly expenses")
    current_savings: float = Field(..., ge=0)
    current_debt: float = Field(..., ge=0)
    interest_rates: InterestRates = Field(default_factory=InterestRates)
    monthly_contributions: MonthlyContributions = Field(default_factory=MonthlyContributions)

    @field_validator(
        "current_income", "current_expenses", "current_savings", "current_debt",
    )
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        return require_finite(v)

    @property
    def starting_net_worth(self) -> float:
        return self.current_savings - self.current_debt

    @property
    def monthly_disposable(self) -> float:
        return self.current_income - self.current_expenses


# =============================================================================
# FINANCIAL SCENARIO
# =============================================================================

AssumptionValue = Union[float, str]


class FinancialScenario(CamelModel):
    """
    A hypothesized financial future.

    Produced by the scenario-generation collaborator or supplied by the
    caller. Only the refinement loop's self-correction step derives a
    changed copy of one (see `with_adjustments`).
    """

    id: str = Field(default_factory=lambda: f"scenario_{uuid4().hex[:12]}")
    type: ScenarioType
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    assumptions: dict[str, AssumptionValue] = Field(default_factory=dict)
    timeframe_months: int = Field(..., gt=0, le=600)
    probability: float = Field(default=0.5, ge=0.0, le=1.0)
    impact: ScenarioImpact = ScenarioImpact.NEUTRAL

    @field_validator("type", "impact", mode="before")
    @classmethod
    def lowercase_enum(cls, v):
        """Collaborators sometimes shout enum values ("JOB_LOSS")."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def with_adjustments(
        self,
        adjustments: dict[str, float],
    ) -> tuple["FinancialScenario", dict[str, float], list[str]]:
        """
        Apply numeric corrections to assumptions that already exist.

        Keys absent from `assumptions` are ignored, never inserted. A known
        key matches its other spelling ("percentChange" / "percent_change")
        and is written under the spelling the scenario already uses.

        Returns:
            (adjusted_scenario, applied, ignored_keys)
        """
        present = {canonical_assumption_key(self.type, k): k for k in self.assumptions}
        applied: dict[str, float] = {}
        ignored: list[str] = []
        for key, value in adjustments.items():
            if key in self.assumptions:
                target = key
            else:
                target = present.get(canonical_assumption_key(self.type, key))
            if target is None:
                ignored.append(key)
            else:
                applied[target] = value

        if not applied:
            return self, applied, ignored

        updated = {**self.assumptions, **applied}
        return self.model_copy(update={"assumptions": updated}), applied, ignored

    @property
    def typed_assumptions(self) -> "ScenarioAssumptions":
        return normalize_assumptions(self.type, self.assumptions)


# =============================================================================
# TYPED ASSUMPTIONS (tagged union, one variant per scenario type)
# =============================================================================

DEFAULT_PERCENT_CHANGE = 10.0
DEFAULT_PERCENT_REDUCTION = 15.0
DEFAULT_EXTRA_MONTHLY_PAYMENT = 200.0
DEFAULT_EMERGENCY_COST = 5000.0
DEFAULT_MONTHS_UNEMPLOYED = 3.0
DEFAULT_INFLATION_RATE = 3.0
DEFAULT_ANNUAL_RETURN = 7.0


class _Assumptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class IncomeChangeAssumptions(_Assumptions):
    type: Literal[ScenarioType.INCOME_CHANGE] = ScenarioType.INCOME_CHANGE
    percent_change: float = Field(default=DEFAULT_PERCENT_CHANGE, alias="percentChange")


class ExpenseReductionAssumptions(_Assumptions):
    type: Literal[ScenarioType.EXPENSE_REDUCTION] = ScenarioType.EXPENSE_REDUCTION
    percent_reduction: float = Field(default=DEFAULT_PERCENT_REDUCTION, alias="percentReduction")


class DebtPayoffAssumptions(_Assumptions):
    type: Literal[ScenarioType.DEBT_PAYOFF] = ScenarioType.DEBT_PAYOFF
    extra_monthly_payment: float = Field(
        default=DEFAULT_EXTRA_MONTHLY_PAYMENT, alias="extraMonthlyPayment"
    )


class EmergencyEventAssumptions(_Assumptions):
    type: Literal[ScenarioType.EMERGENCY_EVENT] = ScenarioType.EMERGENCY_EVENT
    cost: float = Field(default=DEFAULT_EMERGENCY_COST, alias="cost")


class JobLossAssumptions(_Assumptions):
    type: Literal[ScenarioType.JOB_LOSS] = ScenarioType.JOB_LOSS
    months_unemployed: float = Field(default=DEFAULT_MONTHS_UNEMPLOYED, alias="monthsUnemployed")


class InflationImpactAssumptions(_Assumptions):
    type: Literal[ScenarioType.INFLATION_IMPACT] = ScenarioType.INFLATION_IMPACT
    annual_rate: float = Field(default=DEFAULT_INFLATION_RATE, alias="annualRate")


class InvestmentGrowthAssumptions(_Assumptions):
    type: Literal[ScenarioType.INVESTMENT_GROWTH] = ScenarioType.INVESTMENT_GROWTH
    annual_return: float = Field(default=DEFAULT_ANNUAL_RETURN, alias="annualReturn")


class GoalAchievementAssumptions(_Assumptions):
    type: Literal[ScenarioType.GOAL_ACHIEVEMENT] = ScenarioType.GOAL_ACHIEVEMENT


ScenarioAssumptions = Annotated[
    Union[
        IncomeChangeAssumptions,
        ExpenseReductionAssumptions,
        DebtPayoffAssumptions,
        EmergencyEventAssumptions,
        JobLossAssumptions,
        InflationImpactAssumptions,
        InvestmentGrowthAssumptions,
        GoalAchievementAssumptions,
    ],
    Field(discriminator="type"),
]

_assumptions_adapter = TypeAdapter(ScenarioAssumptions)

_NUMBER_NOISE = re.compile(r"[,$%\s]")


def coerce_number(value: AssumptionValue) -> Optional[float]:
    """
    Convert a loosely typed assumption value into a finite float.

    Accepts numbers and numeric strings such as "12", "12%" or "$1,500".
    Returns None for anything else.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NUMBER_NOISE.sub("", value)
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_assumptions(
    scenario_type: ScenarioType,
    assumptions: dict[str, AssumptionValue],
) -> ScenarioAssumptions:
    """
    Map a raw assumptions mapping onto the typed variant for `scenario_type`.

    Known keys (camelCase or snake_case) that hold a usable number are copied
    over; anything missing, textual or non-finite falls back to the variant's
    documented default. Unknown keys are dropped from the typed view (they
    stay in the raw mapping).
    """
    aliases = _alias_map(ScenarioType(scenario_type))
    payload: dict[str, object] = {"type": ScenarioType(scenario_type)}
    for key, raw in assumptions.items():
        alias = aliases.get(key)
        number = coerce_number(raw)
        if alias is None or number is None:
            continue
        # camelCase wins when both spellings are present
        if key != alias and alias in assumptions and coerce_number(assumptions[alias]) is not None:
            continue
        payload[alias] = number

    return _assumptions_adapter.validate_python(payload)


_VARIANTS: dict[ScenarioType, type[_Assumptions]] = {
    ScenarioType.INCOME_CHANGE: IncomeChangeAssumptions,
    ScenarioType.EXPENSE_REDUCTION: ExpenseReductionAssumptions,
    ScenarioType.DEBT_PAYOFF: DebtPayoffAssumptions,
    ScenarioType.EMERGENCY_EVENT: EmergencyEventAssumptions,
    ScenarioType.JOB_LOSS: JobLossAssumptions,
    ScenarioType.INFLATION_IMPACT: InflationImpactAssumptions,
    ScenarioType.INVESTMENT_GROWTH: InvestmentGrowthAssumptions,
    ScenarioType.GOAL_ACHIEVEMENT: GoalAchievementAssumptions,
}


def _alias_map(scenario_type: ScenarioType) -> dict[str, str]:
    """Both spellings of each assumption key, mapped to the camelCase alias."""
    model = _VARIANTS[scenario_type]
    aliases: dict[str, str] = {}
    for name, info in model.model_fields.items():
        if name == "type":
            continue
        alias = info.alias or name
        aliases[name] = alias
        aliases[alias] = alias
    return aliases


def canonical_assumption_key(scenario_type: ScenarioType, key: str) -> str:
    """camelCase alias for a known assumption key; other keys unchanged."""
    return _alias_map(ScenarioType(scenario_type)).get(key, key)
