"""Interfaces of the collaborators the roll engine calls into."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.pity import PityState


@dataclass(slots=True)
class RollHistoryRecord:
    player_id: int
    kind_id: str
    card_ids: Sequence[str]
    rarities: Sequence[str]
    currency: str
    amount: int
    timestamp: datetime


class CurrencyLedger(Protocol):
    """Spendable balances; ``spend`` must be atomic per player."""

    async def spend(self, player_id: int, currency: str, amount: int) -> bool:
        ...

    async def credit(self, player_id: int, currency: str, amount: int) -> None:
        ...

    async def balance(self, player_id: int, currency: str) -> int:
        ...


class PityStore(Protocol):
    async def load(self, player_id: int) -> PityState | None:
        ...

    async def save(self, player_id: int, state: PityState) -> None:
        ...


class RollHistoryStore(Protocol):
    async def add_record(self, record: RollHistoryRecord) -> None:
        ...

    async def recent_for_user(self, player_id: int, limit: int = 20) -> Sequence[RollHistoryRecord]:
        ...
