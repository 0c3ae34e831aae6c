"""
Scenario Coach - Source Package

A scenario simulation and self-verifying projection engine for
personal-finance coaching.

DESIGN PRINCIPLES:
1. The engine computes → the reasoning service reviews → the engine recomputes
2. Reasoning failures fail open, input errors fail fast
3. Only existing assumptions are ever corrected
4. Every step must be auditable
5. Reasoning backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Scenario Coach Team"
