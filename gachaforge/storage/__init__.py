"""Storage backends for GachaForge."""

from .base import CurrencyLedger, PityStore, RollHistoryRecord, RollHistoryStore
from .memory import InMemoryCurrencyLedger, InMemoryPityStore, InMemoryRollHistoryStore
from .sqlalchemy import AsyncSQLAlchemyStorage

__all__ = [
    "CurrencyLedger",
    "PityStore",
    "RollHistoryRecord",
    "RollHistoryStore",
    "InMemoryCurrencyLedger",
    "InMemoryPityStore",
    "InMemoryRollHistoryStore",
    "AsyncSQLAlchemyStorage",
]
