"""Exceptions raised by the simulation engine."""


class InvalidInputError(ValueError):
    """Caller input cannot be simulated. Never retried."""
    pass


class InvalidScenarioError(InvalidInputError):
    """Scenario or run parameters are out of range (timeframe, iterations)."""
    pass
