"""Pity counters that force a guaranteed rarity after a run of misses.

A :class:`PityState` holds one counter per guaranteed tier. The first counter
is the primary one: ``consecutive_misses`` and ``guaranteed_at_threshold``
read from it, and ``record_miss``/``record_hit`` act on it alone. The roll
orchestrator uses :meth:`PityTracker.record`, which updates every counter from
the rarity actually drawn.

A counter with threshold ``k`` forces the roll that follows ``k - 1``
consecutive misses, so the ``k``-th roll is always at or above the target.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from .exceptions import ConfigurationError
from .rarity import Rarity


@dataclass(frozen=True, slots=True)
class PityRule:
    """Guarantee ``target``-or-better at least once every ``threshold`` rolls."""

    target: Rarity
    threshold: int

    def __post_init__(self) -> None:
        if self.threshold <= 0:
            raise ConfigurationError(
                f"Pity threshold for '{self.target.value}' must be positive, got {self.threshold}"
            )


@dataclass(frozen=True, slots=True)
class PityCounter:
    target: Rarity
    threshold: int
    misses: int = 0

    @property
    def due(self) -> bool:
        return self.misses >= self.threshold - 1


@dataclass(frozen=True, slots=True)
class PityState:
    counters: tuple[PityCounter, ...] = ()

    @classmethod
    def fresh(cls, rules: Iterable[PityRule]) -> "PityState":
        counters = tuple(PityCounter(target=rule.target, threshold=rule.threshold) for rule in rules)
        targets = [counter.target for counter in counters]
        if len(set(targets)) != len(targets):
            raise ConfigurationError("Pity rules must target distinct rarities")
        return cls(counters=counters)

    @property
    def primary(self) -> PityCounter | None:
        return self.counters[0] if self.counters else None

    @property
    def consecutive_misses(self) -> int:
        return self.primary.misses if self.primary else 0

    @property
    def guaranteed_at_threshold(self) -> int | None:
        return self.primary.threshold if self.primary else None

    def misses_for(self, target: Rarity) -> int:
        for counter in self.counters:
            if counter.target is target:
                return counter.misses
        raise KeyError(f"No pity counter for {target.value}")

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            counter.target.value: {"threshold": counter.threshold, "misses": counter.misses}
            for counter in self.counters
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Mapping[str, int]]) -> "PityState":
        return cls(
            counters=tuple(
                PityCounter(
                    target=Rarity.parse(target),
                    threshold=int(values["threshold"]),
                    misses=int(values.get("misses", 0)),
                )
                for target, values in data.items()
            )
        )


@dataclass(frozen=True, slots=True)
class PityProgress:
    target: Rarity
    current: int
    threshold: int

    @property
    def percentage(self) -> float:
        return self.current / self.threshold * 100


DEFAULT_PITY_RULES: tuple[PityRule, ...] = (
    PityRule(Rarity.RARE, 10),
    PityRule(Rarity.EPIC, 30),
    PityRule(Rarity.LEGENDARY, 90),
    PityRule(Rarity.MYTHIC, 200),
    PityRule(Rarity.COSMIC, 500),
)


class PityTracker:
    """Pure transformations over :class:`PityState`."""

    def should_force_guarantee(self, state: PityState) -> bool:
        return any(counter.due for counter in state.counters)

    def forced_rarity(self, state: PityState) -> Rarity | None:
        """Highest target among counters that are due, if any."""
        due = [counter.target for counter in state.counters if counter.due]
        return max(due) if due else None

    def record_miss(self, state: PityState) -> PityState:
        if not state.counters:
            return state
        primary = state.counters[0]
        return replace(state, counters=(replace(primary, misses=primary.misses + 1), *state.counters[1:]))

    def record_hit(self, state: PityState) -> PityState:
        if not state.counters:
            return state
        return replace(state, counters=(replace(state.counters[0], misses=0), *state.counters[1:]))

    def record(self, state: PityState, rarity: Rarity) -> PityState:
        """Reset every counter whose target ``rarity`` meets; bump the rest."""
        return replace(
            state,
            counters=tuple(
                replace(counter, misses=0)
                if rarity >= counter.target
                else replace(counter, misses=counter.misses + 1)
                for counter in state.counters
            ),
        )

    def record_draw(self, state: PityState, rarity: Rarity, forced: Rarity | None = None) -> PityState:
        """Like :meth:`record`, but a forced draw settles every counter up to
        ``forced`` even when the catalog stepped the card down to a lower tier."""
        if forced is not None and forced > rarity:
            rarity = forced
        return self.record(state, rarity)

    def progress(self, state: PityState) -> list[PityProgress]:
        return [
            PityProgress(target=counter.target, current=counter.misses, threshold=counter.threshold)
            for counter in state.counters
        ]
