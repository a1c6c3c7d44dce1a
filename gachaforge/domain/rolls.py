"""Single and bundled rolls: charge, draw, apply pity and pack bonuses."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from random import Random
from typing import Iterable, Mapping, Sequence
from weakref import WeakValueDictionary

from ..storage.base import CurrencyLedger, PityStore
from .cards import CardCatalog, CardDefinition
from .economy import RollCost
from .events import BUNDLE_COMPLETED, ROLL_COMPLETED, EventBus
from .exceptions import ConfigurationError, InsufficientCurrency
from .packs import PackPolicy, apply_policy
from .pity import DEFAULT_PITY_RULES, PityRule, PityState, PityTracker
from .rarity import RandomSource, Rarity, RarityResolver, RarityWeightTable

logger = logging.getLogger(__name__)

RARITY_VALUES: Mapping[Rarity, int] = {
    Rarity.COMMON: 1,
    Rarity.UNCOMMON: 5,
    Rarity.RARE: 25,
    Rarity.EPIC: 100,
    Rarity.LEGENDARY: 500,
    Rarity.MYTHIC: 2500,
    Rarity.COSMIC: 10000,
}


@dataclass(frozen=True, slots=True)
class RollResult:
    card: CardDefinition
    rarity_drawn: Rarity
    pity_triggered: bool
    cost_charged: RollCost
    pack_bonus_applied: bool = False
    roll_number: int = 1


@dataclass(frozen=True, slots=True)
class BonusRule:
    """Grant one ``reward`` card when a bundle's value or tier count clears a bar.

    ``value_above`` is exclusive; ``count_of``/``count_at_least`` require that
    many cards of exactly that tier. A rule with neither never fires.
    """

    reward: Rarity
    value_above: int | None = None
    count_of: Rarity | None = None
    count_at_least: int = 1

    def applies(self, total_value: int, breakdown: Mapping[Rarity, int]) -> bool:
        if self.value_above is not None and total_value > self.value_above:
            return True
        if self.count_of is not None and breakdown.get(self.count_of, 0) >= self.count_at_least:
            return True
        return False


DEFAULT_BONUS_RULES: tuple[BonusRule, ...] = (
    BonusRule(Rarity.EPIC, value_above=5000),
    BonusRule(Rarity.LEGENDARY, value_above=10000),
    BonusRule(Rarity.MYTHIC, count_of=Rarity.LEGENDARY, count_at_least=5),
)


@dataclass(frozen=True, slots=True)
class BundleSummary:
    rarity_breakdown: Mapping[Rarity, int]
    total_value: int
    highlights: tuple[CardDefinition, ...]
    guarantee_triggered: bool
    total_cost: int
    bonus_cards: tuple[CardDefinition, ...] = ()


def summarize_rolls(
    results: Sequence[RollResult],
    *,
    rarity_values: Mapping[Rarity, int] = RARITY_VALUES,
    highlight_limit: int = 5,
    catalog: CardCatalog | None = None,
    bonus_rules: Iterable[BonusRule] = DEFAULT_BONUS_RULES,
    rng: RandomSource | None = None,
) -> BundleSummary:
    """Aggregate a bundle: per-tier counts, value and the best rare-or-better cards.

    Bonus cards are only drawn when ``catalog`` is given. A rule whose reward
    tier has no cards grants nothing.
    """
    breakdown = Counter(result.rarity_drawn for result in results)
    total_value = sum(rarity_values.get(result.rarity_drawn, 1) for result in results)
    highlights = sorted(
        (result.card for result in results if result.rarity_drawn >= Rarity.RARE),
        key=lambda card: rarity_values.get(card.rarity, 1),
        reverse=True,
    )

    bonus_cards: list[CardDefinition] = []
    if catalog is not None:
        rng = rng or Random()
        for rule in bonus_rules:
            if not rule.applies(total_value, breakdown):
                continue
            pool = catalog.cards_of(rule.reward)
            if pool:
                bonus_cards.append(pool[min(int(rng.random() * len(pool)), len(pool) - 1)])

    return BundleSummary(
        rarity_breakdown=dict(breakdown),
        total_value=total_value,
        highlights=tuple(highlights[:highlight_limit]),
        guarantee_triggered=any(r.pity_triggered or r.pack_bonus_applied for r in results),
        total_cost=sum(result.cost_charged.amount for result in results),
        bonus_cards=tuple(bonus_cards),
    )


class PlayerLocks:
    """One asyncio lock per player; idle locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[int, asyncio.Lock] = WeakValueDictionary()

    def for_player(self, player_id: int) -> asyncio.Lock:
        lock = self._locks.get(player_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[player_id] = lock
        return lock


class RollOrchestrator:
    """Perform rolls that either complete fully or change nothing."""

    def __init__(
        self,
        catalog: CardCatalog,
        ledger: CurrencyLedger,
        pity_store: PityStore,
        *,
        pity_rules: Iterable[PityRule] = DEFAULT_PITY_RULES,
        default_cost: RollCost = RollCost("gold", 100),
        resolver: RarityResolver | None = None,
        tracker: PityTracker | None = None,
        rng: RandomSource | None = None,
        event_bus: EventBus | None = None,
        locks: PlayerLocks | None = None,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._pity_store = pity_store
        self._pity_rules = tuple(pity_rules)
        self._default_cost = default_cost
        self._resolver = resolver or RarityResolver()
        self._tracker = tracker or PityTracker()
        self._rng = rng or Random()
        self._event_bus = event_bus or EventBus()
        self._locks = locks or PlayerLocks()
        # Fails fast on duplicate targets.
        PityState.fresh(self._pity_rules)

    @property
    def catalog(self) -> CardCatalog:
        return self._catalog

    @property
    def ledger(self) -> CurrencyLedger:
        return self._ledger

    async def pity_state(self, player_id: int) -> PityState:
        return await self._pity_store.load(player_id) or PityState.fresh(self._pity_rules)

    async def roll_one(
        self,
        player_id: int,
        weights: RarityWeightTable | Mapping[Rarity, float],
        policy: PackPolicy | None = None,
        *,
        cost: RollCost | None = None,
    ) -> RollResult:
        results = await self._roll(player_id, 1, weights, policy, cost)
        return results[0]

    async def roll_bundle(
        self,
        player_id: int,
        count: int,
        weights: RarityWeightTable | Mapping[Rarity, float],
        policy: PackPolicy,
        *,
        cost: RollCost | None = None,
    ) -> list[RollResult]:
        if count <= 0:
            raise ConfigurationError(f"Bundle size must be positive, got {count}")
        results = await self._roll(player_id, count, weights, policy, cost)
        logger.info(
            "Player %s rolled a bundle of %s for %s %s.",
            player_id,
            count,
            results[0].cost_charged.amount,
            results[0].cost_charged.currency,
        )
        await self._event_bus.publish(
            BUNDLE_COMPLETED,
            {
                "player_id": player_id,
                "cards": [result.card.card_id for result in results],
                "rarities": [result.rarity_drawn.value for result in results],
                "cost": results[0].cost_charged.amount,
                "currency": results[0].cost_charged.currency,
            },
        )
        return results

    async def _roll(
        self,
        player_id: int,
        count: int,
        weights: RarityWeightTable | Mapping[Rarity, float],
        policy: PackPolicy | None,
        base_cost: RollCost | None,
    ) -> list[RollResult]:
        table = weights if isinstance(weights, RarityWeightTable) else RarityWeightTable.from_mapping(weights)
        base = base_cost or self._default_cost
        if policy is not None:
            charge = policy.bundle_cost(base, count)
        else:
            charge = RollCost(base.currency, base.amount * count)

        lock = self._locks.for_player(player_id)
        async with lock:
            state = await self.pity_state(player_id)
            self._preflight(table, policy, state)

            if not await self._ledger.spend(player_id, charge.currency, charge.amount):
                available = await self._ledger.balance(player_id, charge.currency)
                raise InsufficientCurrency(charge.currency, charge.amount, available)

            results: list[RollResult] = []
            for index in range(count):
                state, result = self._draw(
                    table,
                    policy,
                    state,
                    index=index,
                    count=count,
                    charged=charge if index == 0 else charge.free(),
                )
                results.append(result)
            await self._pity_store.save(player_id, state)

        for result in results:
            logger.debug(
                "Player %s drew %s (%s)%s.",
                player_id,
                result.card.card_id,
                result.rarity_drawn.value,
                " via pity" if result.pity_triggered else "",
            )
            await self._event_bus.publish(
                ROLL_COMPLETED,
                {
                    "player_id": player_id,
                    "card_id": result.card.card_id,
                    "rarity": result.rarity_drawn.value,
                    "pity_triggered": result.pity_triggered,
                },
            )
        return results

    def _preflight(
        self, table: RarityWeightTable, policy: PackPolicy | None, state: PityState
    ) -> None:
        """Surface catalog gaps before any currency moves."""
        candidates = list(table.positive_tiers())
        candidates.extend(counter.target for counter in state.counters)
        if policy is not None and policy.guaranteed_minimum_rarity is not None:
            candidates.append(policy.guaranteed_minimum_rarity)
        self._catalog.resolve_rarity(min(candidates))

    def _draw(
        self,
        table: RarityWeightTable,
        policy: PackPolicy | None,
        state: PityState,
        *,
        index: int,
        count: int,
        charged: RollCost,
    ) -> tuple[PityState, RollResult]:
        forced = self._tracker.forced_rarity(state)
        if forced is not None:
            natural = forced
        else:
            natural = self._resolver.draw(table, self._rng)

        rarity = apply_policy(policy, index, natural, count) if policy is not None else natural
        card = self._catalog.pick_random(rarity, self._rng)
        state = self._tracker.record_draw(state, card.rarity, forced)
        return state, RollResult(
            card=card,
            rarity_drawn=card.rarity,
            pity_triggered=forced is not None,
            cost_charged=charged,
            pack_bonus_applied=rarity is not natural,
            roll_number=index + 1,
        )
