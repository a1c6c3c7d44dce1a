"""Top level application object wiring the roll engine together."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from random import Random
from typing import Any, Awaitable, Callable, Iterable, Mapping

from .config import GachaForgeConfig
from .domain.autoroll import (
    AutoRollConfig,
    AutoRollController,
    AutoRollProgress,
    AutoRollResult,
    AutoRollState,
)
from .domain.cards import CardCatalog, CardDefinition
from .domain.economy import Currency, CurrencyRegistry
from .domain.events import EventBus
from .domain.exceptions import AutoRollAlreadyRunning, UnknownRollKind
from .domain.packs import RollKind, default_roll_kinds
from .domain.pity import PityProgress, PityRule, PityTracker
from .domain.rarity import RarityWeightTable
from .domain.rolls import DEFAULT_BONUS_RULES, BonusRule, BundleSummary, RollOrchestrator, RollResult, summarize_rolls
from .loaders.json_loader import CatalogDefinition
from .storage.base import CurrencyLedger, PityStore, RollHistoryRecord, RollHistoryStore
from .storage.memory import InMemoryCurrencyLedger, InMemoryPityStore, InMemoryRollHistoryStore
from .storage.sqlalchemy import AsyncSQLAlchemyStorage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[AutoRollProgress], Awaitable[None]]
CompletionCallback = Callable[[AutoRollResult], Awaitable[None]]


@dataclass(slots=True)
class AutoRollHandle:
    """Reference to a running auto-roll returned by :meth:`GachaApp.start_auto_roll`."""

    player_id: int
    kind_id: str
    controller: AutoRollController
    task: asyncio.Task[AutoRollResult]

    @property
    def state(self) -> AutoRollState:
        return self.controller.state

    @property
    def rolls(self) -> tuple[RollResult, ...]:
        return self.controller.rolls

    def pause(self) -> None:
        self.controller.pause()

    def resume(self) -> None:
        self.controller.resume()

    async def wait(self) -> AutoRollResult:
        return await self.task


class GachaApp:
    """Central dependency container and public facade of the roll engine."""

    def __init__(
        self,
        config: GachaForgeConfig,
        *,
        cards: CardCatalog | Iterable[CardDefinition] = (),
        currencies: Iterable[Currency] = (),
        roll_kinds: Iterable[RollKind] | None = None,
        weight_tables: Mapping[str, RarityWeightTable] | None = None,
        pity_rules: Iterable[PityRule] | None = None,
        bonus_rules: Iterable[BonusRule] = DEFAULT_BONUS_RULES,
        ledger: CurrencyLedger | None = None,
        pity_store: PityStore | None = None,
        history_store: RollHistoryStore | None = None,
        event_bus: EventBus | None = None,
        rng: Random | None = None,
    ) -> None:
        self.config = config
        self.event_bus = event_bus or EventBus()
        self.catalog = cards if isinstance(cards, CardCatalog) else CardCatalog(cards)

        self.currencies = CurrencyRegistry()
        for currency in currencies:
            self.currencies.register(currency)
        for code in self.config.default_currencies:
            if code not in self.currencies:
                self.currencies.register(Currency(code=code, name=code.title()))

        kinds = tuple(roll_kinds) if roll_kinds is not None else default_roll_kinds()
        self.roll_kinds: dict[str, RollKind] = {kind.kind_id: kind for kind in kinds}

        self.weight_tables: dict[str, RarityWeightTable] = dict(weight_tables or {})
        self.weight_tables.setdefault("default", self.config.rolls.weight_table())

        self.pity_rules: tuple[PityRule, ...] = (
            tuple(pity_rules) if pity_rules is not None else self.config.rolls.pity_rules()
        )

        self.bonus_rules: tuple[BonusRule, ...] = tuple(bonus_rules)

        self._rng = rng or (Random(config.rng_seed) if config.rng_seed is not None else Random())

        self._sqlalchemy_storage: AsyncSQLAlchemyStorage | None = None
        self.ledger, self.pity_store, self.history_store = self._wire_storage(
            ledger, pity_store, history_store
        )

        self.orchestrator = RollOrchestrator(
            self.catalog,
            self.ledger,
            self.pity_store,
            pity_rules=self.pity_rules,
            rng=self._rng,
            event_bus=self.event_bus,
        )
        self._tracker = PityTracker()
        self._auto_rolls: dict[int, AutoRollHandle] = {}

    @classmethod
    def from_definition(
        cls, config: GachaForgeConfig, definition: CatalogDefinition, **kwargs: Any
    ) -> "GachaApp":
        """Build an app from a parsed JSON catalog."""
        return cls(
            config,
            cards=definition.build_catalog(),
            currencies=definition.currencies,
            roll_kinds=definition.roll_kinds or None,
            weight_tables=definition.weight_tables,
            pity_rules=definition.pity_rules,
            **kwargs,
        )

    def _wire_storage(
        self,
        ledger: CurrencyLedger | None,
        pity_store: PityStore | None,
        history_store: RollHistoryStore | None,
    ) -> tuple[CurrencyLedger, PityStore, RollHistoryStore]:
        if ledger and pity_store and history_store:
            return ledger, pity_store, history_store

        backend = self.config.storage.backend
        if backend == "memory":
            return (
                ledger or InMemoryCurrencyLedger(self.config.rolls.starting_balances),
                pity_store or InMemoryPityStore(),
                history_store or InMemoryRollHistoryStore(),
            )
        if backend == "sqlalchemy":
            dsn = self.config.storage.resolve_dsn()
            if not dsn:
                raise ValueError("SQLAlchemy backend requires a DSN")
            storage = AsyncSQLAlchemyStorage(dsn, echo=self.config.storage.echo_sql)
            self._sqlalchemy_storage = storage
            return (
                ledger or storage.currency_ledger(),
                pity_store or storage.pity_store(),
                history_store or storage.roll_history_store(),
            )
        raise ValueError(f"Unsupported storage backend {backend}")

    def roll_kind(self, kind_id: str) -> RollKind:
        try:
            return self.roll_kinds[kind_id]
        except KeyError as exc:
            raise UnknownRollKind(f"Roll kind {kind_id} is not configured") from exc

    def _weights_for(self, kind: RollKind) -> RarityWeightTable:
        try:
            return self.weight_tables[kind.weights_key]
        except KeyError as exc:
            raise UnknownRollKind(
                f"Roll kind {kind.kind_id} uses unknown weight table {kind.weights_key}"
            ) from exc

    async def roll_one(self, player_id: int, kind_id: str = "single") -> RollResult:
        """Roll a single card of ``kind_id`` for ``player_id``."""
        kind = self.roll_kind(kind_id)
        policy = kind.policy if kind.bundle_size == 1 else None
        result = await self.orchestrator.roll_one(
            player_id, self._weights_for(kind), policy, cost=kind.base_cost
        )
        await self._record(player_id, kind, [result])
        return result

    async def roll_bundle(
        self, player_id: int, count: int | None = None, kind_id: str = "ten"
    ) -> list[RollResult]:
        """Roll a bundle; ``count`` defaults to the roll kind's bundle size."""
        kind = self.roll_kind(kind_id)
        results = await self.orchestrator.roll_bundle(
            player_id,
            count if count is not None else kind.bundle_size,
            self._weights_for(kind),
            kind.policy,
            cost=kind.base_cost,
        )
        await self._record(player_id, kind, results)
        return results

    async def roll_bundle_summary(
        self, player_id: int, count: int | None = None, kind_id: str = "ten"
    ) -> tuple[list[RollResult], BundleSummary]:
        results = await self.roll_bundle(player_id, count, kind_id)
        summary = summarize_rolls(
            results, catalog=self.catalog, bonus_rules=self.bonus_rules, rng=self._rng
        )
        if summary.bonus_cards:
            logger.info(
                "Player %s earned bonus cards: %s.",
                player_id,
                ", ".join(card.card_id for card in summary.bonus_cards),
            )
        return results, summary

    def start_auto_roll(
        self,
        player_id: int,
        config: AutoRollConfig | None = None,
        kind_id: str = "single",
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> AutoRollHandle:
        """Start an unattended roll sequence; one per player at a time."""
        current = self._auto_rolls.get(player_id)
        if current is not None and not current.task.done():
            raise AutoRollAlreadyRunning(f"Player {player_id} already has an auto-roll running")

        kind = self.roll_kind(kind_id)
        if config is None:
            config = AutoRollConfig(
                max_rolls=self.config.autoroll.max_rolls,
                batch_size=self.config.autoroll.batch_size,
            )

        async def record_progress(progress: AutoRollProgress) -> None:
            await self._record(player_id, kind, [progress.last_roll])
            if on_progress is not None:
                await on_progress(progress)

        controller = AutoRollController(
            self.orchestrator,
            player_id,
            config,
            weights=self._weights_for(kind),
            policy=kind.policy if kind.bundle_size == 1 else None,
            cost=kind.base_cost,
            on_progress=record_progress,
            on_complete=on_complete,
            event_bus=self.event_bus,
        )
        handle = AutoRollHandle(
            player_id=player_id, kind_id=kind_id, controller=controller, task=controller.start()
        )
        self._auto_rolls[player_id] = handle
        logger.debug("Auto-roll of %s registered for player %s.", kind_id, player_id)
        handle.task.add_done_callback(lambda _task: self._forget_auto_roll(handle))
        return handle

    def cancel_auto_roll(self, handle: AutoRollHandle) -> None:
        """Request cooperative cancellation; completed rolls are kept."""
        handle.controller.cancel()

    def active_auto_roll(self, player_id: int) -> AutoRollHandle | None:
        return self._auto_rolls.get(player_id)

    def _forget_auto_roll(self, handle: AutoRollHandle) -> None:
        if self._auto_rolls.get(handle.player_id) is handle:
            del self._auto_rolls[handle.player_id]
        if handle.task.cancelled():
            return
        exc = handle.task.exception()
        if exc is not None:
            logger.error(
                "Auto-roll of %s for player %s ended with %s: %s",
                handle.kind_id,
                handle.player_id,
                type(exc).__name__,
                exc,
            )

    async def pity_progress(self, player_id: int) -> list[PityProgress]:
        state = await self.orchestrator.pity_state(player_id)
        return self._tracker.progress(state)

    async def balance(self, player_id: int, currency: str) -> int:
        return await self.ledger.balance(player_id, currency)

    async def credit(self, player_id: int, currency: str, amount: int) -> None:
        self.currencies.get(currency)
        await self.ledger.credit(player_id, currency, amount)

    async def history(self, player_id: int, limit: int = 20) -> list[RollHistoryRecord]:
        return list(await self.history_store.recent_for_user(player_id, limit))

    async def _record(self, player_id: int, kind: RollKind, results: list[RollResult]) -> None:
        charged = results[0].cost_charged
        await self.history_store.add_record(
            RollHistoryRecord(
                player_id=player_id,
                kind_id=kind.kind_id,
                card_ids=tuple(result.card.card_id for result in results),
                rarities=tuple(result.rarity_drawn.value for result in results),
                currency=charged.currency,
                amount=sum(result.cost_charged.amount for result in results),
                timestamp=datetime.now(timezone.utc),
            )
        )

    def snapshot(self) -> dict[str, Any]:
        """Export current configuration for debugging."""
        return {
            "storage": self.config.storage.backend,
            "cards": [card.card_id for card in self.catalog.iter_cards()],
            "currencies": [currency.code for currency in self.currencies.all()],
            "roll_kinds": list(self.roll_kinds),
            "weight_tables": {name: table.as_dict() for name, table in self.weight_tables.items()},
            "pity": {rule.target.value: rule.threshold for rule in self.pity_rules},
        }

    async def init_backend(self) -> None:
        """Initialize storage backend resources (e.g., database tables)."""
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.init_models()

    async def close(self) -> None:
        if self._sqlalchemy_storage:
            await self._sqlalchemy_storage.dispose()
