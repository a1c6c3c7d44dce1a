"""Configuration models for GachaForge."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Literal, Mapping, Sequence

from .domain.pity import DEFAULT_PITY_RULES, PityRule
from .domain.rarity import DEFAULT_RARITY_WEIGHTS, Rarity, RarityWeightTable

StorageBackend = Literal["memory", "sqlalchemy"]

_TRUTHY = {"1", "true", "yes"}


@dataclass(slots=True)
class StorageConfig:
    """Configure where balances, pity counters and roll history live."""

    backend: StorageBackend = "memory"
    dsn: str | None = None
    echo_sql: bool = False

    def resolve_dsn(self) -> str | None:
        if self.dsn:
            return self.dsn
        if self.backend == "sqlalchemy":
            return "sqlite+aiosqlite:///./gachaforge.db"
        return None


@dataclass(slots=True)
class RollConfig:
    """Draw odds, pity thresholds and the balances new players start with."""

    rarity_weights: Mapping[str, float] = field(default_factory=DEFAULT_RARITY_WEIGHTS.as_dict)
    pity_thresholds: Mapping[str, int] = field(
        default_factory=lambda: {rule.target.value: rule.threshold for rule in DEFAULT_PITY_RULES}
    )
    starting_balances: Mapping[str, int] = field(
        default_factory=lambda: {"gold": 1000, "tickets": 5}
    )

    def weight_table(self) -> RarityWeightTable:
        return RarityWeightTable.from_mapping(self.rarity_weights)

    def pity_rules(self) -> tuple[PityRule, ...]:
        rules = [
            PityRule(target=Rarity.parse(target), threshold=int(threshold))
            for target, threshold in self.pity_thresholds.items()
        ]
        return tuple(sorted(rules, key=lambda rule: rule.target.rank))


@dataclass(slots=True)
class AutoRollDefaults:
    max_rolls: int = 10
    batch_size: int = 1


@dataclass(slots=True)
class GachaForgeConfig:
    """Top-level configuration container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    rolls: RollConfig = field(default_factory=RollConfig)
    autoroll: AutoRollDefaults = field(default_factory=AutoRollDefaults)
    default_currencies: Sequence[str] = field(default_factory=lambda: ("gold", "tickets", "gems"))
    rng_seed: int | None = None

    @classmethod
    def from_env(cls) -> "GachaForgeConfig":
        """Create config from environment variables prefixed with GACHAFORGE_."""
        prefix = "GACHAFORGE_"
        defaults = RollConfig()

        storage = StorageConfig(
            backend=os.getenv(f"{prefix}STORAGE_BACKEND", "memory"),
            dsn=os.getenv(f"{prefix}STORAGE_DSN"),
            echo_sql=os.getenv(f"{prefix}STORAGE_ECHO_SQL", "false").lower() in _TRUTHY,
        )

        weights = _parse_json_mapping(f"{prefix}RARITY_WEIGHTS", float)
        thresholds = _parse_json_mapping(f"{prefix}PITY_THRESHOLDS", int)
        balances = _parse_json_mapping(f"{prefix}STARTING_BALANCES", int)
        rolls = RollConfig(
            rarity_weights=weights if weights is not None else defaults.rarity_weights,
            pity_thresholds=thresholds if thresholds is not None else defaults.pity_thresholds,
            starting_balances=balances if balances is not None else defaults.starting_balances,
        )

        autoroll = AutoRollDefaults(
            max_rolls=int(os.getenv(f"{prefix}AUTOROLL_MAX_ROLLS", "10")),
            batch_size=int(os.getenv(f"{prefix}AUTOROLL_BATCH_SIZE", "1")),
        )

        currencies = tuple(
            cur.strip()
            for cur in os.getenv(f"{prefix}DEFAULT_CURRENCIES", "gold,tickets,gems").split(",")
            if cur.strip()
        )

        return cls(
            storage=storage,
            rolls=rolls,
            autoroll=autoroll,
            default_currencies=currencies,
            rng_seed=(
                int(os.getenv(f"{prefix}RNG_SEED")) if os.getenv(f"{prefix}RNG_SEED") else None
            ),
        )


def _parse_json_mapping(variable: str, cast: type) -> dict | None:
    raw = os.getenv(variable)
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON for {variable}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{variable} must be a JSON object")
    return {str(k): cast(v) for k, v in data.items()}
