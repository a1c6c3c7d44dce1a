import pytest

from gachaforge.domain.cards import CardCatalog, CardDefinition
from gachaforge.domain.exceptions import CatalogExhausted, ConfigurationError
from gachaforge.domain.rarity import Rarity
from gachaforge.testing import ScriptedRandom


def _card(card_id: str, rarity: Rarity) -> CardDefinition:
    return CardDefinition(card_id=card_id, name=card_id.title(), rarity=rarity)


@pytest.fixture()
def sparse_catalog():
    return CardCatalog(
        [
            _card("pebble", Rarity.COMMON),
            _card("twig", Rarity.COMMON),
            _card("gem", Rarity.EPIC),
        ]
    )


def test_pick_random_returns_card_of_requested_tier(sparse_catalog):
    card = sparse_catalog.pick_random(Rarity.COMMON, ScriptedRandom([0.6]))
    assert card.card_id == "twig"


def test_fallback_steps_down_one_tier_at_a_time(sparse_catalog):
    card = sparse_catalog.pick_random(Rarity.LEGENDARY, ScriptedRandom([0.0]))
    assert card.rarity is Rarity.EPIC


def test_fallback_never_returns_a_higher_tier(sparse_catalog):
    card = sparse_catalog.pick_random(Rarity.RARE, ScriptedRandom([0.0]))
    assert card.rarity is Rarity.COMMON
    assert sparse_catalog.resolve_rarity(Rarity.UNCOMMON) is Rarity.COMMON


def test_exhausted_when_nothing_at_or_below():
    catalog = CardCatalog([_card("gem", Rarity.EPIC)])
    with pytest.raises(CatalogExhausted) as exc_info:
        catalog.pick_random(Rarity.RARE, ScriptedRandom([0.0]))
    assert exc_info.value.rarity == "rare"


def test_empty_catalog_is_exhausted():
    with pytest.raises(CatalogExhausted):
        CardCatalog().resolve_rarity(Rarity.COSMIC)


def test_duplicate_card_ids_rejected():
    with pytest.raises(ConfigurationError):
        CardCatalog([_card("gem", Rarity.EPIC), _card("gem", Rarity.RARE)])


def test_catalog_lookups(sparse_catalog):
    assert len(sparse_catalog) == 3
    assert sparse_catalog.get_card("gem").rarity is Rarity.EPIC
    assert sparse_catalog.available_rarities() == (Rarity.COMMON, Rarity.EPIC)
    assert sparse_catalog.count_by_rarity()[Rarity.COMMON] == 2
    assert [card.card_id for card in sparse_catalog.cards_of(Rarity.COMMON)] == ["pebble", "twig"]
