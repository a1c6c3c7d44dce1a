"""SQLAlchemy storage backend for GachaForge."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Sequence

from sqlalchemy import JSON, DateTime, Integer, String, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..domain.pity import PityState
from .base import CurrencyLedger, PityStore, RollHistoryRecord, RollHistoryStore


class Base(DeclarativeBase):
    pass


class WalletTable(Base):
    __tablename__ = "gachaforge_wallets"

    player_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    currency: Mapped[str] = mapped_column(String(64), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, default=0)


class PityTable(Base):
    __tablename__ = "gachaforge_pity"

    player_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    counters: Mapped[dict] = mapped_column(JSON, default=dict)


class RollHistoryTable(Base):
    __tablename__ = "gachaforge_roll_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    player_id: Mapped[int] = mapped_column(Integer, index=True)
    kind_id: Mapped[str] = mapped_column(String(64))
    card_ids: Mapped[list[str]] = mapped_column(JSON)
    rarities: Mapped[list[str]] = mapped_column(JSON)
    currency: Mapped[str] = mapped_column(String(64))
    amount: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AsyncSQLAlchemyStorage:
    """Bundle of async stores backed by SQLAlchemy."""

    def __init__(self, dsn: str, *, echo: bool = False) -> None:
        self._engine = create_async_engine(dsn, echo=echo)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def init_models(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    def currency_ledger(self) -> "AsyncSQLAlchemyCurrencyLedger":
        return AsyncSQLAlchemyCurrencyLedger(self._session_factory)

    def pity_store(self) -> "AsyncSQLAlchemyPityStore":
        return AsyncSQLAlchemyPityStore(self._session_factory)

    def roll_history_store(self) -> "AsyncSQLAlchemyRollHistoryStore":
        return AsyncSQLAlchemyRollHistoryStore(self._session_factory)


class AsyncSQLAlchemyCurrencyLedger(CurrencyLedger):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def spend(self, player_id: int, currency: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Cannot spend negative amount")
        if amount == 0:
            return True
        async with self._session_factory() as session:
            # Guarded decrement keeps the check and the debit in one statement.
            stmt = (
                update(WalletTable)
                .where(
                    WalletTable.player_id == player_id,
                    WalletTable.currency == currency,
                    WalletTable.balance >= amount,
                )
                .values(balance=WalletTable.balance - amount)
            )
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def credit(self, player_id: int, currency: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot credit negative amount")
        async with self._session_factory() as session:
            stmt = (
                update(WalletTable)
                .where(WalletTable.player_id == player_id, WalletTable.currency == currency)
                .values(balance=WalletTable.balance + amount)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                session.add(WalletTable(player_id=player_id, currency=currency, balance=amount))
            await session.commit()

    async def balance(self, player_id: int, currency: str) -> int:
        async with self._session_factory() as session:
            row = await session.get(WalletTable, (player_id, currency))
            return row.balance if row else 0


class AsyncSQLAlchemyPityStore(PityStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self, player_id: int) -> PityState | None:
        async with self._session_factory() as session:
            row = await session.get(PityTable, player_id)
            if not row:
                return None
            return PityState.from_dict(row.counters or {})

    async def save(self, player_id: int, state: PityState) -> None:
        async with self._session_factory() as session:
            row = await session.get(PityTable, player_id)
            if row:
                row.counters = state.to_dict()
            else:
                session.add(PityTable(player_id=player_id, counters=state.to_dict()))
            await session.commit()


class AsyncSQLAlchemyRollHistoryStore(RollHistoryStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_record(self, record: RollHistoryRecord) -> None:
        async with self._session_factory() as session:
            session.add(
                RollHistoryTable(
                    player_id=record.player_id,
                    kind_id=record.kind_id,
                    card_ids=list(record.card_ids),
                    rarities=list(record.rarities),
                    currency=record.currency,
                    amount=record.amount,
                    timestamp=record.timestamp,
                )
            )
            await session.commit()

    async def recent_for_user(self, player_id: int, limit: int = 20) -> Sequence[RollHistoryRecord]:
        async with self._session_factory() as session:
            stmt = (
                select(RollHistoryTable)
                .where(RollHistoryTable.player_id == player_id)
                .order_by(RollHistoryTable.id.desc())
                .limit(limit)
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [
                RollHistoryRecord(
                    player_id=row.player_id,
                    kind_id=row.kind_id,
                    card_ids=list(row.card_ids),
                    rarities=list(row.rarities),
                    currency=row.currency,
                    amount=row.amount,
                    timestamp=row.timestamp,
                )
                for row in rows
            ]
