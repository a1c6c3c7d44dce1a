import asyncio
from random import Random

import pytest

from gachaforge.domain.cards import CardCatalog, CardDefinition
from gachaforge.domain.economy import RollCost
from gachaforge.domain.events import BUNDLE_COMPLETED, ROLL_COMPLETED, EventBus
from gachaforge.domain.exceptions import CatalogExhausted, ConfigurationError, InsufficientCurrency
from gachaforge.domain.packs import PackPolicy
from gachaforge.domain.pity import PityRule
from gachaforge.domain.rarity import Rarity, RarityWeightTable
from gachaforge.domain.rolls import BonusRule, RollOrchestrator, summarize_rolls
from gachaforge.storage.memory import InMemoryCurrencyLedger, InMemoryPityStore

COMMON_ONLY = RarityWeightTable({Rarity.COMMON: 1.0})


class FailingLedger:
    def __init__(self) -> None:
        self.spend_calls = 0

    async def spend(self, player_id: int, currency: str, amount: int) -> bool:
        self.spend_calls += 1
        return False

    async def credit(self, player_id: int, currency: str, amount: int) -> None:
        raise AssertionError("credit should not be called")

    async def balance(self, player_id: int, currency: str) -> int:
        return 0


def _catalog(*rarities: Rarity) -> CardCatalog:
    return CardCatalog(
        CardDefinition(card_id=f"{rarity.value}_{idx}", name=rarity.value.title(), rarity=rarity)
        for rarity in rarities
        for idx in range(2)
    )


def _orchestrator(catalog, ledger=None, pity_rules=(), **kwargs):
    return RollOrchestrator(
        catalog,
        ledger or InMemoryCurrencyLedger({"gold": 1000}),
        kwargs.pop("pity_store", None) or InMemoryPityStore(),
        pity_rules=pity_rules,
        rng=kwargs.pop("rng", None) or Random(11),
        **kwargs,
    )


@pytest.mark.asyncio()
async def test_roll_one_charges_and_returns_card():
    ledger = InMemoryCurrencyLedger({"gold": 1000})
    orchestrator = _orchestrator(_catalog(Rarity.COMMON), ledger)

    result = await orchestrator.roll_one(1, COMMON_ONLY)

    assert result.rarity_drawn is Rarity.COMMON
    assert result.card.rarity is Rarity.COMMON
    assert not result.pity_triggered
    assert result.cost_charged == RollCost("gold", 100)
    assert await ledger.balance(1, "gold") == 900


@pytest.mark.asyncio()
async def test_pity_forces_kth_roll_then_resets():
    pity_store = InMemoryPityStore()
    orchestrator = _orchestrator(
        _catalog(Rarity.COMMON, Rarity.RARE),
        InMemoryCurrencyLedger({"gold": 10_000}),
        pity_rules=(PityRule(Rarity.RARE, 10),),
        pity_store=pity_store,
    )

    results = [await orchestrator.roll_one(1, COMMON_ONLY) for _ in range(10)]

    assert [r.rarity_drawn for r in results[:9]] == [Rarity.COMMON] * 9
    assert results[9].rarity_drawn is Rarity.RARE
    assert results[9].pity_triggered
    state = await pity_store.load(1)
    assert state.consecutive_misses == 0

    follow_up = await orchestrator.roll_one(1, COMMON_ONLY)
    assert not follow_up.pity_triggered
    assert (await pity_store.load(1)).consecutive_misses == 1


@pytest.mark.asyncio()
async def test_pity_resets_when_forced_tier_falls_back():
    pity_store = InMemoryPityStore()
    orchestrator = _orchestrator(
        _catalog(Rarity.COMMON, Rarity.EPIC),
        InMemoryCurrencyLedger({"gold": 4000}),
        pity_rules=(PityRule(Rarity.RARE, 10),),
        pity_store=pity_store,
    )

    results = [await orchestrator.roll_one(1, COMMON_ONLY) for _ in range(40)]

    forced = [index + 1 for index, r in enumerate(results) if r.pity_triggered]
    assert forced == [10, 20, 30, 40]
    assert all(r.rarity_drawn is Rarity.COMMON for r in results)
    assert (await pity_store.load(1)).misses_for(Rarity.RARE) == 0


@pytest.mark.asyncio()
async def test_failed_spend_changes_nothing():
    pity_store = InMemoryPityStore()
    ledger = FailingLedger()
    orchestrator = _orchestrator(
        _catalog(Rarity.COMMON, Rarity.RARE),
        ledger,
        pity_rules=(PityRule(Rarity.RARE, 10),),
        pity_store=pity_store,
    )

    with pytest.raises(InsufficientCurrency) as exc_info:
        await orchestrator.roll_one(1, COMMON_ONLY)

    assert exc_info.value.required == 100
    assert exc_info.value.available == 0
    assert ledger.spend_calls == 1
    assert await pity_store.load(1) is None


@pytest.mark.asyncio()
async def test_catalog_gap_detected_before_charging():
    ledger = InMemoryCurrencyLedger({"gold": 1000})
    orchestrator = _orchestrator(_catalog(Rarity.EPIC), ledger)

    with pytest.raises(CatalogExhausted):
        await orchestrator.roll_one(1, COMMON_ONLY)

    assert await ledger.balance(1, "gold") == 1000


@pytest.mark.asyncio()
async def test_bundle_upgrades_last_draw_and_charges_once():
    ledger = InMemoryCurrencyLedger({"gold": 1000})
    orchestrator = _orchestrator(_catalog(Rarity.COMMON, Rarity.EPIC), ledger)
    policy = PackPolicy(cost_multiplier=0.9, bundle_size=10, guaranteed_minimum_rarity=Rarity.EPIC)

    results = await orchestrator.roll_bundle(1, 10, COMMON_ONLY, policy)

    assert len(results) == 10
    assert [r.rarity_drawn for r in results[:9]] == [Rarity.COMMON] * 9
    assert results[9].rarity_drawn >= Rarity.EPIC
    assert results[9].pack_bonus_applied
    assert results[0].cost_charged == RollCost("gold", 900)
    assert all(r.cost_charged == RollCost("gold", 0) for r in results[1:])
    assert [r.roll_number for r in results] == list(range(1, 11))
    assert await ledger.balance(1, "gold") == 100


@pytest.mark.asyncio()
async def test_bundle_guarantee_falls_back_when_tier_is_empty():
    orchestrator = _orchestrator(_catalog(Rarity.COMMON, Rarity.RARE))
    policy = PackPolicy(bundle_size=3, guaranteed_minimum_rarity=Rarity.EPIC)

    results = await orchestrator.roll_bundle(1, 3, COMMON_ONLY, policy)

    assert results[-1].rarity_drawn is Rarity.RARE


@pytest.mark.asyncio()
async def test_bundle_with_insufficient_funds_rolls_nothing():
    ledger = InMemoryCurrencyLedger({"gold": 500})
    orchestrator = _orchestrator(_catalog(Rarity.COMMON), ledger)

    with pytest.raises(InsufficientCurrency):
        await orchestrator.roll_bundle(1, 10, COMMON_ONLY, PackPolicy(0.9, 10))

    assert await ledger.balance(1, "gold") == 500


@pytest.mark.asyncio()
async def test_bundle_rejects_non_positive_count():
    orchestrator = _orchestrator(_catalog(Rarity.COMMON))
    with pytest.raises(ConfigurationError):
        await orchestrator.roll_bundle(1, 0, COMMON_ONLY, PackPolicy())


@pytest.mark.asyncio()
async def test_concurrent_rolls_of_one_player_never_overspend():
    ledger = InMemoryCurrencyLedger({"gold": 100})
    orchestrator = _orchestrator(_catalog(Rarity.COMMON), ledger)

    outcomes = await asyncio.gather(
        orchestrator.roll_one(1, COMMON_ONLY),
        orchestrator.roll_one(1, COMMON_ONLY),
        return_exceptions=True,
    )

    failures = [o for o in outcomes if isinstance(o, InsufficientCurrency)]
    assert len(failures) == 1
    assert await ledger.balance(1, "gold") == 0


@pytest.mark.asyncio()
async def test_events_published_per_roll_and_bundle():
    bus = EventBus()
    rolls: list[dict] = []
    bundles: list[dict] = []

    async def on_roll(payload):
        rolls.append(dict(payload))

    async def on_bundle(payload):
        bundles.append(dict(payload))

    bus.subscribe(ROLL_COMPLETED, on_roll)
    bus.subscribe(BUNDLE_COMPLETED, on_bundle)
    orchestrator = _orchestrator(_catalog(Rarity.COMMON), event_bus=bus)

    await orchestrator.roll_bundle(7, 3, COMMON_ONLY, PackPolicy(bundle_size=3))

    assert len(rolls) == 3
    assert all(payload["player_id"] == 7 for payload in rolls)
    assert bundles[0]["cost"] == 300


@pytest.mark.asyncio()
async def test_summarize_bundle():
    orchestrator = _orchestrator(_catalog(Rarity.COMMON, Rarity.EPIC))
    policy = PackPolicy(bundle_size=10, guaranteed_minimum_rarity=Rarity.EPIC)
    results = await orchestrator.roll_bundle(1, 10, COMMON_ONLY, policy)

    summary = summarize_rolls(results)

    assert summary.rarity_breakdown == {Rarity.COMMON: 9, Rarity.EPIC: 1}
    assert summary.total_value == 9 * 1 + 100
    assert [card.rarity for card in summary.highlights] == [Rarity.EPIC]
    assert summary.guarantee_triggered
    assert summary.total_cost == 1000


@pytest.mark.asyncio()
async def test_summarize_grants_bonus_cards():
    orchestrator = _orchestrator(
        _catalog(Rarity.COMMON, Rarity.LEGENDARY), InMemoryCurrencyLedger({"gold": 5000})
    )
    policy = PackPolicy(bundle_size=12)
    results = await orchestrator.roll_bundle(1, 12, RarityWeightTable({Rarity.LEGENDARY: 1.0}), policy)

    assert summarize_rolls(results).bonus_cards == ()

    without_mythics = summarize_rolls(results, catalog=_catalog(Rarity.EPIC), rng=Random(2))
    assert without_mythics.total_value == 12 * 500
    assert [card.rarity for card in without_mythics.bonus_cards] == [Rarity.EPIC]

    full = summarize_rolls(results, catalog=_catalog(Rarity.EPIC, Rarity.MYTHIC), rng=Random(2))
    assert [card.rarity for card in full.bonus_cards] == [Rarity.EPIC, Rarity.MYTHIC]


def test_bonus_rule_thresholds():
    by_value = BonusRule(Rarity.LEGENDARY, value_above=10000)
    assert not by_value.applies(10000, {})
    assert by_value.applies(10001, {})

    by_count = BonusRule(Rarity.MYTHIC, count_of=Rarity.LEGENDARY, count_at_least=5)
    assert not by_count.applies(0, {Rarity.LEGENDARY: 4})
    assert by_count.applies(0, {Rarity.LEGENDARY: 5})
    assert not BonusRule(Rarity.EPIC).applies(99999, {Rarity.EPIC: 3})
