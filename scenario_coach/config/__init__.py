"""Configuration package."""

from scenario_coach.config.settings import (
    AppSettings,
    GeminiSettings,
    Settings,
    SimulationSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "SimulationSettings",
    "get_settings",
    "validate_all_settings",
]
