"""Input validation package."""

from scenario_coach.validation.validator import InputValidator

__all__ = ["InputValidator"]
