"""In-memory storage backend for GachaForge."""

from __future__ import annotations

from collections import deque
from typing import Deque, Mapping, Sequence

from ..domain.economy import Wallet
from ..domain.pity import PityState
from .base import CurrencyLedger, PityStore, RollHistoryRecord, RollHistoryStore


class InMemoryCurrencyLedger(CurrencyLedger):
    def __init__(self, starting_balances: Mapping[str, int] | None = None) -> None:
        self._starting = dict(starting_balances or {})
        self._wallets: dict[int, Wallet] = {}

    def _wallet(self, player_id: int) -> Wallet:
        if player_id not in self._wallets:
            self._wallets[player_id] = Wallet(balances=dict(self._starting))
        return self._wallets[player_id]

    async def spend(self, player_id: int, currency: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Cannot spend negative amount")
        wallet = self._wallet(player_id)
        if not wallet.can_afford(currency, amount):
            return False
        wallet.debit(currency, amount)
        return True

    async def credit(self, player_id: int, currency: str, amount: int) -> None:
        self._wallet(player_id).credit(currency, amount)

    async def balance(self, player_id: int, currency: str) -> int:
        return self._wallet(player_id).balance(currency)


class InMemoryPityStore(PityStore):
    def __init__(self) -> None:
        self._states: dict[int, PityState] = {}

    async def load(self, player_id: int) -> PityState | None:
        return self._states.get(player_id)

    async def save(self, player_id: int, state: PityState) -> None:
        self._states[player_id] = state


class InMemoryRollHistoryStore(RollHistoryStore):
    def __init__(self, *, maxlen: int = 5000) -> None:
        self._history: Deque[RollHistoryRecord] = deque(maxlen=maxlen)

    async def add_record(self, record: RollHistoryRecord) -> None:
        self._history.append(record)

    async def recent_for_user(self, player_id: int, limit: int = 20) -> Sequence[RollHistoryRecord]:
        filtered = [rec for rec in reversed(self._history) if rec.player_id == player_id]
        return filtered[:limit]
