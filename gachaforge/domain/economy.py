"""Economy primitives."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable


@dataclass(frozen=True, slots=True)
class Currency:
    code: str
    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class RollCost:
    """Amount of a single currency charged for a roll or bundle."""

    currency: str
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Roll cost cannot be negative")

    def free(self) -> "RollCost":
        return RollCost(currency=self.currency, amount=0)


@dataclass(slots=True)
class Wallet:
    """Mutable wallet representation used by ledgers."""

    balances: Dict[str, int] = field(default_factory=dict)

    def balance(self, currency: str) -> int:
        return self.balances.get(currency, 0)

    def credit(self, currency: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot credit negative amount")
        self.balances[currency] = self.balances.get(currency, 0) + amount

    def can_afford(self, currency: str, amount: int) -> bool:
        return self.balances.get(currency, 0) >= amount

    def debit(self, currency: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot debit negative amount")
        current = self.balances.get(currency, 0)
        if current < amount:
            raise ValueError(f"Insufficient {currency}: have {current}, need {amount}")
        self.balances[currency] = current - amount


class CurrencyRegistry:
    """Keeps track of available currencies."""

    def __init__(self, currencies: Iterable[Currency] = ()) -> None:
        self._currencies: dict[str, Currency] = {}
        for currency in currencies:
            self.register(currency)

    def register(self, currency: Currency) -> None:
        if currency.code in self._currencies:
            raise ValueError(f"Currency {currency.code} already registered")
        self._currencies[currency.code] = currency

    def get(self, code: str) -> Currency:
        try:
            return self._currencies[code]
        except KeyError as exc:
            raise KeyError(f"Currency {code} is not configured") from exc

    def __contains__(self, code: object) -> bool:
        return code in self._currencies

    def all(self) -> Iterable[Currency]:
        return self._currencies.values()
