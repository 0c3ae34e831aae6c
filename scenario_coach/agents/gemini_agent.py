"""
Gemini Reasoning Agent

DESIGN DECISION: Gemini is asked for JSON only, and every reply is
validated against the same pydantic models the engine uses. A reply that
does not fit is a MalformedResponseError, handled exactly like an outage.

CRITICAL BOUNDARIES:

1. SCENARIO GENERATION:
   - CAN: Propose plausible futures with numeric assumptions
   - CANNOT: Choose scenario ids (we assign them)
   - CANNOT: Produce outcomes (the Monte Carlo engine does that)

2. VERIFICATION:
   - CAN: Flag implausible assumptions and propose replacement numbers
   - CANNOT: Add new assumption keys (only existing ones are applied)

3. RECOMMENDATIONS / WHAT-IF ANALYSIS:
   - CAN: Summarize what the simulations show
   - CANNOT: Recommend specific securities, products or providers
   - MUST: Stay educational, not prescriptive

The LLM is an ADVISOR on assumptions, never the source of the numbers.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from scenario_coach.config import get_settings
from scenario_coach.config.settings import GeminiSettings
from scenario_coach.models.reports import WhatIfChanges, WhatIfImprovement
from scenario_coach.models.results import (
    Recommendation,
    RecommendationRequest,
    ScenarioResult,
    VerificationResult,
)
from scenario_coach.models.scenario import (
    FinancialScenario,
    ScenarioType,
    SimulationContext,
)
from scenario_coach.services.reasoning.interface import (
    CollaboratorUnavailableError,
    MalformedResponseError,
    ReasoningService,
)


SYSTEM_PROMPT = """You are a careful financial modelling assistant inside an educational planning tool.

Rules:
- Work only with the numbers you are given. Do not invent account balances.
- Keep assumptions realistic for an ordinary household.
- Explain, do not prescribe: never name specific securities, funds or providers.
- Respond with ONLY a JSON object, no markdown fences and no commentary."""


# Expected assumption keys per scenario type, shown to the model
ASSUMPTION_KEYS = {
    ScenarioType.INCOME_CHANGE: "percentChange (percent, e.g. 10 or -20)",
    ScenarioType.EXPENSE_REDUCTION: "percentReduction (percent)",
    ScenarioType.DEBT_PAYOFF: "extraMonthlyPayment (dollars per month)",
    ScenarioType.INVESTMENT_GROWTH: "annualReturn (percent per year)",
    ScenarioType.EMERGENCY_EVENT: "cost (dollars, one-off)",
    ScenarioType.GOAL_ACHIEVEMENT: "(none required)",
    ScenarioType.INFLATION_IMPACT: "annualRate (percent per year)",
    ScenarioType.JOB_LOSS: "monthsUnemployed (months)",
}


class _ScenarioBatch(BaseModel):
    scenarios: list[FinancialScenario] = Field(min_length=1)


class _RecommendationBatch(BaseModel):
    recommendations: list[Recommendation] = Field(min_length=1)


class _WhatIfAnalysis(BaseModel):
    analysis: str = Field(min_length=1)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the outermost JSON object out of a model reply.

    Tolerates markdown fences and chatter around the object.

    Raises:
        MalformedResponseError: No parsable JSON object in the reply
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise MalformedResponseError("No JSON object in response")
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid JSON in response: {e}")
    if not isinstance(data, dict):
        raise MalformedResponseError("Response JSON is not an object")
    return data


def _context_block(context: SimulationContext) -> str:
    return (
        f"- Monthly Income: ${context.current_income:,.2f}\n"
        f"- Monthly Expenses: ${context.current_expenses:,.2f}\n"
        f"- Current Savings: ${context.current_savings:,.2f}\n"
        f"- Current Debt: ${context.current_debt:,.2f}\n"
        f"- Savings Rate: {context.interest_rates.savings}% per year\n"
        f"- Debt Rate: {context.interest_rates.debt}% per year\n"
        f"- Monthly Savings Contribution: ${context.monthly_contributions.savings:,.2f}\n"
        f"- Monthly Debt Payment: ${context.monthly_contributions.debt_payment:,.2f}"
    )


class GeminiReasoningAgent(ReasoningService):
    """
    Reasoning service backed by Google Gemini.

    RESPONSIBILITIES:
    - Propose scenarios for the refinement loop
    - Sanity-check projections and suggest corrected assumptions
    - Write recommendations and what-if summaries from the results

    BOUNDARIES:
    - NEVER falls back silently (callers compose a fallback)
    - NEVER returns unvalidated data
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        self._settings = settings or get_settings().gemini
        if model is not None:
            self._model = model
        else:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_PROMPT,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    @retry(
        retry=retry_if_exception_type(CollaboratorUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _generate_text(self, prompt: str) -> str:
        """One model call. Transport failures are retried; empty replies are not."""
        try:
            response = await self._model.generate_content_async(prompt)
        except Exception as e:
            raise CollaboratorUnavailableError(f"Gemini request failed: {e}")

        try:
            text = response.text
        except ValueError as e:
            # .text raises when the candidate was blocked or has no parts
            raise MalformedResponseError(f"Gemini returned no text: {e}")
        if not text or not text.strip():
            raise MalformedResponseError("Gemini returned an empty response")
        return text.strip()

    async def _generate_json(self, prompt: str) -> dict[str, Any]:
        return extract_json_object(await self._generate_text(prompt))

    async def generate_scenarios(
        self,
        context: SimulationContext,
        count: int,
    ) -> list[FinancialScenario]:
        """
        Ask for `count` diverse scenarios.

        Ids in the reply are discarded and fresh ones assigned, so two
        scenarios can never share an id.
        """
        keys = "\n".join(f"  - {t.value}: {k}" for t, k in ASSUMPTION_KEYS.items())

        prompt = f"""Generate {count} realistic financial scenarios for analysis.

Current Financial State:
{_context_block(context)}

Generate a diverse mix of:
1. Positive scenarios (income increase, expense reduction)
2. Negative scenarios (job loss, emergency)
3. Neutral scenarios (inflation adjustment)

Allowed types and the numeric assumption each one reads:
{keys}

Respond with ONLY a JSON object in this exact format:
{{"scenarios": [{{"type": "income_change", "name": "short name", "description": "one sentence", "assumptions": {{"percentChange": 10}}, "timeframeMonths": 12, "probability": 0.6, "impact": "positive"}}]}}

Constraints:
- timeframeMonths between 3 and 60
- probability between 0 and 1
- impact is one of positive, negative, neutral"""

        data = await self._generate_json(prompt)
        raw_scenarios = data.get("scenarios")
        if isinstance(raw_scenarios, list):
            for item in raw_scenarios:
                if isinstance(item, dict):
                    item.pop("id", None)

        try:
            batch = _ScenarioBatch.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Scenario response failed validation: {e}")

        return batch.scenarios[:count]

    async def verify(
        self,
        context: SimulationContext,
        scenario: FinancialScenario,
        result: ScenarioResult,
    ) -> VerificationResult:
        """Ask Gemini to check one projection for realism and consistency."""
        outcome = result.projected_outcome

        prompt = f"""Verify this financial projection for accuracy and realism.

Scenario: {scenario.name}
Type: {scenario.type.value}
Timeframe: {scenario.timeframe_months} months
Probability: {scenario.probability:.0%}

Assumptions:
{json.dumps(scenario.assumptions, indent=2)}

Projected Outcome:
- Final Savings: ${outcome.final_savings:,.0f}
- Final Debt: ${outcome.final_debt:,.0f}
- Net Worth: ${outcome.net_worth:,.0f}
- Emergency Runway: {outcome.emergency_runway_months:.1f} months

Risk Score: {result.risk_score}/100
Confidence Level: {result.confidence_level:.0%}

Starting Context:
{_context_block(context)}

Verify:
1. Are the assumptions realistic?
2. Is the math internally consistent?
3. Does the outcome align with the scenario type?
4. Are there any red flags or inconsistencies?

If issues exist, provide numerical adjustments using ONLY the assumption keys listed above.

Respond with ONLY a JSON object in this exact format:
{{"isValid": true, "issues": [], "adjustments": {{}}, "verificationScore": 0.8, "explanation": "brief explanation"}}"""

        data = await self._generate_json(prompt)
        try:
            return VerificationResult.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Verification response failed validation: {e}")

    async def summarize_recommendations(
        self,
        context: SimulationContext,
        request: RecommendationRequest,
    ) -> list[Recommendation]:
        """Prioritized, educational next steps from the finished analysis."""
        summary = json.dumps(
            [s.model_dump(mode="json", by_alias=True) for s in request.scenarios],
            indent=2,
        )

        prompt = f"""Based on comprehensive scenario analysis, generate prioritized financial recommendations.

Current Financial State:
{_context_block(context)}

Scenario Analysis Results:
{summary}

Key Findings:
- Highest Risk Scenario: {request.highest_risk_scenario or "none"}
- Most Likely Positive Outcome: {request.most_confident_positive_scenario or "none"}
- Verification Issues Found: {request.remaining_issue_count}

Generate 5-7 actionable recommendations that:
1. Mitigate the highest risks
2. Capitalize on positive opportunities
3. Are specific and measurable
4. Consider the person's current financial constraints

Respond with ONLY a JSON object in this exact format:
{{"recommendations": [{{"priority": "high", "action": "what to do", "rationale": "why it matters"}}]}}

priority is one of critical, high, medium, low."""

        data = await self._generate_json(prompt)
        try:
            batch = _RecommendationBatch.model_validate(data)
        except ValidationError as e:
            raise MalformedResponseError(f"Recommendation response failed validation: {e}")
        return batch.recommendations

    async def analyze_what_if(
        self,
        context: SimulationContext,
        changes: WhatIfChanges,
        improvement: WhatIfImprovement,
        timeframe_months: int,
    ) -> str:
        """Short assessment of whether the proposed changes are worth it."""
        lines = []
        if changes.income_change:
            lines.append(f"- Income: {changes.income_change:+,.0f}/month")
        if changes.expense_change:
            lines.append(f"- Expenses: {changes.expense_change:+,.0f}/month")
        if changes.extra_savings:
            lines.append(f"- Extra Savings: {changes.extra_savings:+,.0f}/month")
        if changes.extra_debt_payment:
            lines.append(f"- Extra Debt Payment: {changes.extra_debt_payment:+,.0f}/month")
        proposed = "\n".join(lines) or "- No changes"

        prompt = f"""Analyze the impact of proposed financial changes.

Proposed Changes:
{proposed}

Over {timeframe_months} months:
- Savings Improvement: ${improvement.savings_difference:,.0f}
- Debt Reduction Improvement: ${improvement.debt_difference:,.0f}
- Net Worth Improvement: ${improvement.net_worth_difference:,.0f}
- Emergency Runway Improvement: {improvement.runway_difference:.1f} months

Provide a concise analysis of whether these changes are worth pursuing and why.

Respond with ONLY a JSON object in this exact format:
{{"analysis": "two or three sentences"}}"""

        data = await self._generate_json(prompt)
        try:
            return _WhatIfAnalysis.model_validate(data).analysis.strip()
        except ValidationError as e:
            raise MalformedResponseError(f"What-if response failed validation: {e}")
