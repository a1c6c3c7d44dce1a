import pytest

from gachaforge.domain.economy import RollCost
from gachaforge.domain.exceptions import ConfigurationError
from gachaforge.domain.packs import PackKind, PackPolicy, apply_policy, default_roll_kinds
from gachaforge.domain.rarity import Rarity


def test_only_last_draw_is_upgraded():
    policy = PackPolicy(cost_multiplier=0.9, bundle_size=10, guaranteed_minimum_rarity=Rarity.EPIC)
    assert apply_policy(policy, 0, Rarity.COMMON) is Rarity.COMMON
    assert apply_policy(policy, 8, Rarity.COMMON) is Rarity.COMMON
    assert apply_policy(policy, 9, Rarity.COMMON) is Rarity.EPIC


def test_last_draw_above_minimum_is_kept():
    policy = PackPolicy(bundle_size=5, guaranteed_minimum_rarity=Rarity.RARE)
    assert apply_policy(policy, 4, Rarity.MYTHIC) is Rarity.MYTHIC


def test_policy_without_guarantee_changes_nothing():
    policy = PackPolicy(bundle_size=3)
    assert apply_policy(policy, 2, Rarity.COMMON) is Rarity.COMMON


def test_bundle_cost_is_rounded_up_once():
    base = RollCost("gold", 100)
    assert PackPolicy(0.9, 10).bundle_cost(base) == RollCost("gold", 900)
    assert PackPolicy(0.8, 100).bundle_cost(base) == RollCost("gold", 8000)
    assert PackPolicy(0.9, 10).bundle_cost(RollCost("tickets", 1)) == RollCost("tickets", 9)
    assert PackPolicy(1.5, 1).bundle_cost(RollCost("tickets", 1)) == RollCost("tickets", 2)


def test_invalid_policy_rejected():
    with pytest.raises(ConfigurationError):
        PackPolicy(bundle_size=0)
    with pytest.raises(ConfigurationError):
        PackPolicy(cost_multiplier=-1)


def test_pack_kinds_resolve_to_policies():
    assert PackKind.BASIC.policy().guaranteed_minimum_rarity is None
    assert PackKind.PREMIUM.policy().cost_multiplier == 1.5
    legendary = PackKind.LEGENDARY.policy(5)
    assert legendary.cost_multiplier == 2.0
    assert legendary.bundle_size == 5
    assert legendary.guaranteed_minimum_rarity is Rarity.RARE
    assert PackKind.COSMIC.policy().guaranteed_minimum_rarity is Rarity.EPIC


def test_default_roll_kinds():
    kinds = {kind.kind_id: kind for kind in default_roll_kinds()}
    assert kinds["single"].total_cost == RollCost("gold", 100)
    assert kinds["ten"].total_cost == RollCost("gold", 900)
    assert kinds["hundred"].total_cost == RollCost("gold", 8000)
    assert kinds["ticket_ten"].total_cost == RollCost("tickets", 9)
    assert kinds["hundred"].policy.guaranteed_minimum_rarity is Rarity.EPIC
