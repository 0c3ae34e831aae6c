"""
Tests for the Gemini reasoning agent.

The model is replaced by a scripted fake; no network calls are made.
"""

import asyncio
import json

import pytest

from scenario_coach.agents import GeminiReasoningAgent, extract_json_object
from scenario_coach.config.settings import GeminiSettings
from scenario_coach.engine import analyze_scenario, make_rng, run_monte_carlo
from scenario_coach.models import (
    RecommendationPriority,
    RecommendationRequest,
    ScenarioType,
    WhatIfChanges,
    WhatIfImprovement,
)
from scenario_coach.services.reasoning import MalformedResponseError


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Returns scripted replies in order and records prompts."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        return FakeResponse(self.replies.pop(0))


def _agent(*replies):
    model = FakeModel(*replies)
    return GeminiReasoningAgent(settings=GeminiSettings(api_key="test-key"), model=model), model


class TestJsonExtraction:
    """Tests for extract_json_object."""

    def test_fenced_json(self):
        """Test that markdown fences and chatter are tolerated."""
        text = 'Sure!\n```json\n{"analysis": "ok"}\n```'
        assert extract_json_object(text) == {"analysis": "ok"}

    def test_no_json(self):
        """Test a reply with no object is malformed."""
        with pytest.raises(MalformedResponseError):
            extract_json_object("I cannot help with that")

    def test_broken_json(self):
        """Test unparsable JSON is malformed."""
        with pytest.raises(MalformedResponseError):
            extract_json_object('{"analysis": }')


class TestGeminiAgent:
    """Tests for GeminiReasoningAgent with a fake model."""

    def test_generate_scenarios_assigns_fresh_ids(self, context):
        """Test that collaborator ids are replaced and the count is honored."""
        reply = json.dumps({"scenarios": [
            {
                "id": "same",
                "type": "income_change",
                "name": "Raise",
                "description": "A raise",
                "assumptions": {"percentChange": 10},
                "timeframeMonths": 12,
                "probability": 0.6,
                "impact": "positive",
            },
            {
                "id": "same",
                "type": "JOB_LOSS",
                "name": "Layoff",
                "description": "A layoff",
                "assumptions": {"monthsUnemployed": "4"},
                "timeframeMonths": 12,
                "probability": 0.1,
                "impact": "negative",
            },
            {
                "type": "inflation_impact",
                "name": "Inflation",
                "assumptions": {"annualRate": 3},
                "timeframeMonths": 12,
            },
        ]})
        agent, model = _agent(reply)

        scenarios = asyncio.run(agent.generate_scenarios(context, 2))

        assert len(scenarios) == 2
        assert len({s.id for s in scenarios}) == 2
        assert "same" not in {s.id for s in scenarios}
        assert scenarios[1].type == ScenarioType.JOB_LOSS
        assert "Generate 2 realistic financial scenarios" in model.prompts[0]

    def test_generate_scenarios_rejects_bad_schema(self, context):
        """Test that an invalid scenario type is a malformed response."""
        reply = json.dumps({"scenarios": [
            {"type": "lottery_win", "name": "Lucky", "timeframeMonths": 12},
        ]})
        agent, _ = _agent(reply)
        with pytest.raises(MalformedResponseError):
            asyncio.run(agent.generate_scenarios(context, 1))

    def test_verify_parses_verdict(self, context, debt_payoff_scenario):
        """Test a camelCase verdict is parsed."""
        reply = json.dumps({
            "isValid": False,
            "issues": ["Extra payment exceeds surplus"],
            "adjustments": {"extraMonthlyPayment": 150},
            "verificationScore": 0.35,
            "explanation": "Too aggressive",
        })
        agent, model = _agent(reply)
        simulation = run_monte_carlo(context, debt_payoff_scenario, 20, rng=make_rng(1))
        result = analyze_scenario(context, debt_payoff_scenario, simulation)

        verdict = asyncio.run(agent.verify(context, debt_payoff_scenario, result))

        assert verdict.is_valid is False
        assert verdict.adjustments == {"extraMonthlyPayment": 150.0}
        assert "Pay down the card" in model.prompts[0]

    def test_verify_missing_field_is_not_retried(self, context, debt_payoff_scenario):
        """Test a schema violation raises at once, after a single call."""
        agent, model = _agent(json.dumps({"issues": []}))
        simulation = run_monte_carlo(context, debt_payoff_scenario, 20, rng=make_rng(1))
        result = analyze_scenario(context, debt_payoff_scenario, simulation)

        with pytest.raises(MalformedResponseError):
            asyncio.run(agent.verify(context, debt_payoff_scenario, result))
        assert len(model.prompts) == 1

    def test_recommendations(self, context):
        """Test prioritized recommendations are parsed."""
        reply = json.dumps({"recommendations": [
            {"priority": "critical", "action": "Build a cushion", "rationale": "Runway is short"},
            {"priority": "low", "action": "Review subscriptions", "rationale": "Small wins"},
        ]})
        agent, model = _agent(reply)
        request = RecommendationRequest(
            scenarios=[],
            highest_risk_scenario="Layoff",
            remaining_issue_count=1,
        )

        recommendations = asyncio.run(agent.summarize_recommendations(context, request))

        assert recommendations[0].priority == RecommendationPriority.CRITICAL
        assert recommendations[0].to_text() == "[CRITICAL] Build a cushion: Runway is short"
        assert "Highest Risk Scenario: Layoff" in model.prompts[0]

    def test_empty_recommendations_are_malformed(self, context):
        """Test an empty recommendation list is rejected."""
        agent, _ = _agent(json.dumps({"recommendations": []}))
        with pytest.raises(MalformedResponseError):
            asyncio.run(
                agent.summarize_recommendations(context, RecommendationRequest(scenarios=[]))
            )

    def test_what_if_analysis(self, context):
        """Test the analysis text is returned and the prompt lists the changes."""
        agent, model = _agent(json.dumps({"analysis": " Worth it. "}))
        improvement = WhatIfImprovement(
            savings_difference=1200, debt_difference=600,
            net_worth_difference=1800, runway_difference=0.4,
        )

        text = asyncio.run(agent.analyze_what_if(
            context, WhatIfChanges(extra_debt_payment=50), improvement, 12
        ))

        assert text == "Worth it."
        assert "Extra Debt Payment: +50/month" in model.prompts[0]
        assert "Income:" not in model.prompts[0]
