"""GachaForge card roll engine public API."""

from .app import AutoRollHandle, GachaApp
from .config import GachaForgeConfig
from .domain import (
    AutoRollConfig,
    AutoRollResult,
    CardCatalog,
    CardDefinition,
    PackKind,
    PackPolicy,
    Rarity,
    RarityWeightTable,
    RollOrchestrator,
    RollResult,
    StopReason,
)

__all__ = [
    "AutoRollHandle",
    "GachaApp",
    "GachaForgeConfig",
    "AutoRollConfig",
    "AutoRollResult",
    "CardCatalog",
    "CardDefinition",
    "PackKind",
    "PackPolicy",
    "Rarity",
    "RarityWeightTable",
    "RollOrchestrator",
    "RollResult",
    "StopReason",
]
