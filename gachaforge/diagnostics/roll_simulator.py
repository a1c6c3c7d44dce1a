"""Monte-Carlo simulation of roll outcomes."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from random import Random
from typing import Dict

from ..app import GachaApp
from ..domain.packs import apply_policy
from ..domain.pity import PityState, PityTracker
from ..domain.rarity import Rarity, RarityResolver


@dataclass(slots=True)
class SimulationResult:
    pulls: int
    cards_drawn: int = 0
    currency: str = ""
    total_cost: int = 0
    rarities: Dict[Rarity, int] = field(default_factory=dict)
    pity_triggers: int = 0
    pack_bonuses: int = 0

    def share(self, rarity: Rarity) -> float:
        if not self.cards_drawn:
            return 0.0
        return self.rarities.get(rarity, 0) / self.cards_drawn

    def rolls_per(self, rarity: Rarity) -> float | None:
        """Average number of cards drawn per card of ``rarity`` or better."""
        hits = sum(count for tier, count in self.rarities.items() if tier >= rarity)
        if not hits:
            return None
        return self.cards_drawn / hits

    @property
    def average_cost_per_card(self) -> float:
        return self.total_cost / self.cards_drawn if self.cards_drawn else 0.0


class RollSimulator:
    """Replays the roll pipeline without touching balances or stores."""

    def __init__(self, app: GachaApp, *, rng: Random | None = None) -> None:
        self._app = app
        self._rng = rng or Random()
        self._resolver = RarityResolver()
        self._tracker = PityTracker()

    def simulate(self, kind_id: str, *, pulls: int = 1000) -> SimulationResult:
        kind = self._app.roll_kind(kind_id)
        weights = self._app.weight_tables[kind.weights_key]
        catalog = self._app.catalog
        policy = kind.policy
        size = kind.bundle_size
        charge = kind.total_cost

        result = SimulationResult(pulls=pulls, currency=charge.currency)
        counts: Counter[Rarity] = Counter()
        state = PityState.fresh(self._app.pity_rules)
        for _ in range(pulls):
            result.total_cost += charge.amount
            for index in range(size):
                forced = self._tracker.forced_rarity(state)
                natural = forced if forced is not None else self._resolver.draw(weights, self._rng)
                rarity = apply_policy(policy, index, natural, size)
                card = catalog.pick_random(rarity, self._rng)
                state = self._tracker.record_draw(state, card.rarity, forced)
                counts[card.rarity] += 1
                result.cards_drawn += 1
                if forced is not None:
                    result.pity_triggers += 1
                if rarity is not natural:
                    result.pack_bonuses += 1
        result.rarities = dict(counts)
        return result
