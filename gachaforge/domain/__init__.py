"""Domain models and services."""

from .autoroll import (
    AutoRollConfig,
    AutoRollController,
    AutoRollProgress,
    AutoRollResult,
    AutoRollState,
    StopReason,
)
from .cards import CardCatalog, CardDefinition, CardStats
from .economy import Currency, CurrencyRegistry, RollCost, Wallet
from .exceptions import (
    AutoRollAlreadyRunning,
    CatalogExhausted,
    ConfigurationError,
    GachaForgeError,
    InsufficientCurrency,
    UnknownRollKind,
)
from .packs import PackKind, PackPolicy, RollKind, apply_policy, default_roll_kinds
from .pity import DEFAULT_PITY_RULES, PityCounter, PityProgress, PityRule, PityState, PityTracker
from .rarity import DEFAULT_RARITY_WEIGHTS, RandomSource, Rarity, RarityResolver, RarityWeightTable
from .rolls import (
    DEFAULT_BONUS_RULES,
    BonusRule,
    BundleSummary,
    PlayerLocks,
    RollOrchestrator,
    RollResult,
    summarize_rolls,
)

__all__ = [
    "AutoRollConfig",
    "AutoRollController",
    "AutoRollProgress",
    "AutoRollResult",
    "AutoRollState",
    "StopReason",
    "CardCatalog",
    "CardDefinition",
    "CardStats",
    "Currency",
    "CurrencyRegistry",
    "RollCost",
    "Wallet",
    "AutoRollAlreadyRunning",
    "CatalogExhausted",
    "ConfigurationError",
    "GachaForgeError",
    "InsufficientCurrency",
    "UnknownRollKind",
    "PackKind",
    "PackPolicy",
    "RollKind",
    "apply_policy",
    "default_roll_kinds",
    "DEFAULT_PITY_RULES",
    "PityCounter",
    "PityProgress",
    "PityRule",
    "PityState",
    "PityTracker",
    "DEFAULT_RARITY_WEIGHTS",
    "RandomSource",
    "Rarity",
    "RarityResolver",
    "RarityWeightTable",
    "BonusRule",
    "BundleSummary",
    "DEFAULT_BONUS_RULES",
    "PlayerLocks",
    "RollOrchestrator",
    "RollResult",
    "summarize_rolls",
]
