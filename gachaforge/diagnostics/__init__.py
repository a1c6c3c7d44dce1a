"""Diagnostics helpers for balancing roll odds."""

from .roll_simulator import RollSimulator, SimulationResult

__all__ = ["RollSimulator", "SimulationResult"]
