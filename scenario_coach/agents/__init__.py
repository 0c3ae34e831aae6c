"""AI agents package."""

from scenario_coach.agents.gemini_agent import GeminiReasoningAgent, extract_json_object

__all__ = ["GeminiReasoningAgent", "extract_json_object"]
