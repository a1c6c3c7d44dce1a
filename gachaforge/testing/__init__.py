"""Testing utilities for GachaForge."""

from .factory import CardFactory
from .fixtures import app_fixture, memory_app
from .random import ScriptedRandom

__all__ = [
    "CardFactory",
    "app_fixture",
    "memory_app",
    "ScriptedRandom",
]
