"""Bundle policies and the roll kinds built on them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .economy import RollCost
from .exceptions import ConfigurationError
from .rarity import Rarity


@dataclass(frozen=True, slots=True)
class PackPolicy:
    """Cost multiplier and last-draw guarantee for a bundle of cards."""

    cost_multiplier: float = 1.0
    bundle_size: int = 1
    guaranteed_minimum_rarity: Rarity | None = None

    def __post_init__(self) -> None:
        if self.bundle_size <= 0:
            raise ConfigurationError(f"Pack bundle size must be positive, got {self.bundle_size}")
        if self.cost_multiplier < 0:
            raise ConfigurationError(
                f"Pack cost multiplier cannot be negative, got {self.cost_multiplier}"
            )

    def bundle_cost(self, base: RollCost, bundle_size: int | None = None) -> RollCost:
        size = self.bundle_size if bundle_size is None else bundle_size
        amount = math.ceil(round(base.amount * self.cost_multiplier * size, 6))
        return RollCost(currency=base.currency, amount=amount)


class PackKind(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    LEGENDARY = "legendary"
    COSMIC = "cosmic"

    def policy(self, bundle_size: int = 1) -> PackPolicy:
        multiplier, guarantee = _PACK_BONUSES[self]
        return PackPolicy(
            cost_multiplier=multiplier,
            bundle_size=bundle_size,
            guaranteed_minimum_rarity=guarantee,
        )


_PACK_BONUSES: dict[PackKind, tuple[float, Rarity | None]] = {
    PackKind.BASIC: (1.0, None),
    PackKind.PREMIUM: (1.5, None),
    PackKind.LEGENDARY: (2.0, Rarity.RARE),
    PackKind.COSMIC: (3.0, Rarity.EPIC),
}


def apply_policy(
    policy: PackPolicy,
    roll_index: int,
    natural: Rarity,
    bundle_size: int | None = None,
) -> Rarity:
    """Upgrade the last draw of a bundle to the policy's minimum rarity."""
    size = policy.bundle_size if bundle_size is None else bundle_size
    if roll_index != size - 1:
        return natural
    minimum = policy.guaranteed_minimum_rarity
    if minimum is not None and natural < minimum:
        return minimum
    return natural


@dataclass(frozen=True, slots=True)
class RollKind:
    """A purchasable roll product, e.g. a ten-pull paid in gold."""

    kind_id: str
    base_cost: RollCost
    policy: PackPolicy = PackPolicy()
    weights_key: str = "default"
    name: str = ""

    @property
    def bundle_size(self) -> int:
        return self.policy.bundle_size

    @property
    def total_cost(self) -> RollCost:
        return self.policy.bundle_cost(self.base_cost)


def default_roll_kinds() -> tuple[RollKind, ...]:
    """Gold and ticket products with the ten/hundred-pull discounts."""
    kinds: list[RollKind] = []
    for currency, base in (("gold", 100), ("tickets", 1)):
        prefix = "" if currency == "gold" else "ticket_"
        kinds.extend(
            (
                RollKind(
                    kind_id=f"{prefix}single",
                    base_cost=RollCost(currency, base),
                    name="Single roll",
                ),
                RollKind(
                    kind_id=f"{prefix}ten",
                    base_cost=RollCost(currency, base),
                    policy=PackPolicy(0.9, 10, Rarity.RARE),
                    name="Ten roll",
                ),
                RollKind(
                    kind_id=f"{prefix}hundred",
                    base_cost=RollCost(currency, base),
                    policy=PackPolicy(0.8, 100, Rarity.EPIC),
                    name="Hundred roll",
                ),
            )
        )
    return tuple(kinds)
