"""Rarity tiers, weight tables and weighted tier sampling."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Protocol

from .exceptions import ConfigurationError


class Rarity(str, Enum):
    """Card quality tiers, declared from lowest to highest."""

    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"
    COSMIC = "cosmic"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank >= other.rank

    def below(self) -> "Rarity | None":
        """Return the next lower tier, or None for the lowest one."""
        if self.rank == 0:
            return None
        return _ORDERED[self.rank - 1]

    def at_least(self) -> tuple["Rarity", ...]:
        """Tiers equal to or better than this one, ascending."""
        return _ORDERED[self.rank :]

    @classmethod
    def parse(cls, value: "str | Rarity") -> "Rarity":
        if isinstance(value, Rarity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(f"Unknown rarity '{value}'") from exc

    @classmethod
    def ascending(cls) -> tuple["Rarity", ...]:
        return _ORDERED


_ORDERED: tuple[Rarity, ...] = tuple(Rarity)
_RANKS: dict[Rarity, int] = {rarity: index for index, rarity in enumerate(_ORDERED)}


class RandomSource(Protocol):
    """Uniform float source in [0, 1); ``random.Random`` satisfies it."""

    def random(self) -> float: ...


@dataclass(frozen=True, slots=True)
class RarityWeightTable:
    """Immutable mapping of rarity tiers to non-negative draw weights."""

    weights: Mapping[Rarity, float]

    def __post_init__(self) -> None:
        cleaned: dict[Rarity, float] = {}
        for rarity, weight in self.weights.items():
            tier = Rarity.parse(rarity)
            value = float(weight)
            if value < 0:
                raise ConfigurationError(f"Weight for '{tier.value}' cannot be negative ({value})")
            cleaned[tier] = value
        if sum(cleaned.values()) <= 0:
            raise ConfigurationError("Rarity weight table must contain at least one positive weight")
        object.__setattr__(self, "weights", MappingProxyType(cleaned))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, float] | Mapping[Rarity, float]) -> "RarityWeightTable":
        return cls(weights=dict(raw))

    @property
    def total(self) -> float:
        return sum(self.weights.values())

    def weight(self, rarity: Rarity) -> float:
        return self.weights.get(rarity, 0.0)

    def probability(self, rarity: Rarity) -> float:
        return self.weight(rarity) / self.total

    def items(self) -> Iterator[tuple[Rarity, float]]:
        """Yield (tier, weight) pairs in ascending tier order."""
        for rarity in Rarity.ascending():
            if rarity in self.weights:
                yield rarity, self.weights[rarity]

    def positive_tiers(self) -> tuple[Rarity, ...]:
        return tuple(rarity for rarity, weight in self.items() if weight > 0)

    def as_dict(self) -> dict[str, float]:
        return {rarity.value: weight for rarity, weight in self.items()}


DEFAULT_RARITY_WEIGHTS = RarityWeightTable(
    {
        Rarity.COMMON: 0.65,
        Rarity.UNCOMMON: 0.25,
        Rarity.RARE: 0.07,
        Rarity.EPIC: 0.025,
        Rarity.LEGENDARY: 0.004,
        Rarity.MYTHIC: 0.0009,
        Rarity.COSMIC: 0.0001,
    }
)


def _cumulative(pairs: Iterable[tuple[Rarity, float]]) -> list[tuple[Rarity, float]]:
    table: list[tuple[Rarity, float]] = []
    running = 0.0
    for rarity, weight in pairs:
        if weight <= 0:
            continue
        running += weight
        table.append((rarity, running))
    return table


class RarityResolver:
    """Draw one rarity tier proportionally to a weight table."""

    def draw(self, weights: RarityWeightTable | Mapping[Rarity, float], rng: RandomSource) -> Rarity:
        if isinstance(weights, RarityWeightTable):
            pairs = list(weights.items())
        else:
            pairs = [(rarity, float(weights[rarity])) for rarity in Rarity.ascending() if rarity in weights]
        if any(weight < 0 for _, weight in pairs):
            raise ConfigurationError("Rarity weights cannot be negative")
        cumulative = _cumulative(pairs)
        if not cumulative:
            raise ConfigurationError("Cannot draw from a weight table whose total weight is zero")

        total = cumulative[-1][1]
        threshold = rng.random() * total
        for rarity, running in cumulative:
            if running >= threshold:
                return rarity
        return cumulative[-1][0]
