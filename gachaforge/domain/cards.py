"""Card domain models and the read-only catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .exceptions import CatalogExhausted, ConfigurationError
from .rarity import RandomSource, Rarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CardStats:
    """Gameplay stats; emoji-variant cards use ``luck`` and ``emoji``."""

    attack: int = 0
    defense: int = 0
    health: int = 0
    cost: int = 0
    luck: float = 0.0
    emoji: str = ""


@dataclass(frozen=True, slots=True)
class CardDefinition:
    """Definition of a collectible card."""

    card_id: str
    name: str
    rarity: Rarity = Rarity.COMMON
    stats: CardStats = field(default_factory=CardStats)
    craftable: bool = True
    description: str = ""
    tags: tuple[str, ...] = ()


class CardCatalog:
    """Cards grouped by rarity tier, built once and never mutated."""

    def __init__(self, cards: Iterable[CardDefinition] = ()) -> None:
        by_id: dict[str, CardDefinition] = {}
        grouped: dict[Rarity, list[CardDefinition]] = {rarity: [] for rarity in Rarity.ascending()}
        for card in cards:
            if card.card_id in by_id:
                raise ConfigurationError(f"Card {card.card_id} already registered")
            by_id[card.card_id] = card
            grouped[card.rarity].append(card)
        self._cards: Mapping[str, CardDefinition] = MappingProxyType(by_id)
        self._by_rarity: Mapping[Rarity, tuple[CardDefinition, ...]] = MappingProxyType(
            {rarity: tuple(items) for rarity, items in grouped.items()}
        )

    def __len__(self) -> int:
        return len(self._cards)

    def get_card(self, card_id: str) -> CardDefinition:
        try:
            return self._cards[card_id]
        except KeyError as exc:
            raise KeyError(f"Card {card_id} not found") from exc

    def iter_cards(self) -> Iterable[CardDefinition]:
        return self._cards.values()

    def cards_of(self, rarity: Rarity) -> tuple[CardDefinition, ...]:
        return self._by_rarity[rarity]

    def available_rarities(self) -> tuple[Rarity, ...]:
        return tuple(rarity for rarity, cards in self._by_rarity.items() if cards)

    def count_by_rarity(self) -> dict[Rarity, int]:
        return {rarity: len(cards) for rarity, cards in self._by_rarity.items()}

    def resolve_rarity(self, rarity: Rarity) -> Rarity:
        """Return the tier a draw at ``rarity`` lands on after stepping down past empty tiers."""
        current: Rarity | None = rarity
        while current is not None:
            if self._by_rarity[current]:
                return current
            current = current.below()
        raise CatalogExhausted(rarity.value)

    def pick_random(self, rarity: Rarity, rng: RandomSource) -> CardDefinition:
        resolved = self.resolve_rarity(rarity)
        if resolved is not rarity:
            logger.warning(
                "No cards of rarity %s, stepped down to %s.", rarity.value, resolved.value
            )
        cards = self._by_rarity[resolved]
        index = min(int(rng.random() * len(cards)), len(cards) - 1)
        return cards[index]
