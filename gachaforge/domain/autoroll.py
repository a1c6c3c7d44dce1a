"""Unattended roll sequences with stop conditions and cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Mapping

from .economy import RollCost
from .events import AUTOROLL_BATCH, AUTOROLL_FINISHED, EventBus
from .exceptions import ConfigurationError, InsufficientCurrency
from .packs import PackPolicy
from .rarity import Rarity, RarityWeightTable
from .rolls import RollOrchestrator, RollResult

logger = logging.getLogger(__name__)


class AutoRollState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class StopReason(str, Enum):
    MAX_REACHED = "max_reached"
    RARITY_ACHIEVED = "rarity_achieved"
    INSUFFICIENT_CURRENCY = "insufficient_currency"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class AutoRollConfig:
    max_rolls: int
    stop_on_rarity: Rarity | None = None
    batch_size: int = 1

    def __post_init__(self) -> None:
        if self.max_rolls <= 0:
            raise ConfigurationError(f"max_rolls must be positive, got {self.max_rolls}")
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")


@dataclass(frozen=True, slots=True)
class AutoRollResult:
    total_rolls: int
    stopped_reason: StopReason
    rolls: tuple[RollResult, ...]


@dataclass(frozen=True, slots=True)
class AutoRollProgress:
    player_id: int
    completed: int
    max_rolls: int
    last_roll: RollResult

    @property
    def percentage(self) -> float:
        return self.completed / self.max_rolls * 100


ProgressCallback = Callable[[AutoRollProgress], Awaitable[None]]
CompletionCallback = Callable[[AutoRollResult], Awaitable[None]]


class AutoRollController:
    """Drive ``RollOrchestrator.roll_one`` until a stop condition holds.

    Stop conditions are checked after every roll, not only at batch
    boundaries. The controller yields to the event loop after every roll, so a
    cancellation keeps everything rolled so far and charges nothing more.
    Reaching ``max_rolls`` takes precedence over a cancel requested on the
    same roll. ``batch_size`` only controls how often progress is announced
    on the event bus.
    """

    def __init__(
        self,
        orchestrator: RollOrchestrator,
        player_id: int,
        config: AutoRollConfig,
        *,
        weights: RarityWeightTable | Mapping[Rarity, float],
        policy: PackPolicy | None = None,
        cost: RollCost | None = None,
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._player_id = player_id
        self._config = config
        self._weights = weights
        self._policy = policy
        self._cost = cost
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._event_bus = event_bus or EventBus()

        self._state = AutoRollState.IDLE
        self._cancel_requested = False
        self._resume = asyncio.Event()
        self._resume.set()
        self._rolls: list[RollResult] = []
        self._result: AutoRollResult | None = None
        self._task: asyncio.Task[AutoRollResult] | None = None

    @property
    def player_id(self) -> int:
        return self._player_id

    @property
    def config(self) -> AutoRollConfig:
        return self._config

    @property
    def state(self) -> AutoRollState:
        return self._state

    @property
    def rolls(self) -> tuple[RollResult, ...]:
        return tuple(self._rolls)

    @property
    def result(self) -> AutoRollResult | None:
        return self._result

    @property
    def is_active(self) -> bool:
        return self._state in (AutoRollState.RUNNING, AutoRollState.PAUSED)

    def start(self) -> asyncio.Task[AutoRollResult]:
        """Schedule :meth:`run` on the running loop."""
        if self._task is not None or self._state is not AutoRollState.IDLE:
            raise RuntimeError("Auto-roll has already been started")
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def wait(self) -> AutoRollResult:
        if self._task is None:
            raise RuntimeError("Auto-roll has not been started")
        return await self._task

    def cancel(self) -> None:
        """Request a stop before the next roll; finished rolls are kept."""
        self._cancel_requested = True
        self._resume.set()

    def pause(self) -> None:
        if self._state is AutoRollState.RUNNING:
            self._state = AutoRollState.PAUSED
            self._resume.clear()

    def resume(self) -> None:
        if self._state is AutoRollState.PAUSED:
            self._state = AutoRollState.RUNNING
            self._resume.set()

    async def run(self) -> AutoRollResult:
        if self._state is not AutoRollState.IDLE:
            raise RuntimeError("Auto-roll has already run")
        self._state = AutoRollState.RUNNING
        logger.info(
            "Auto-roll started for player %s (max %s, stop on %s).",
            self._player_id,
            self._config.max_rolls,
            self._config.stop_on_rarity.value if self._config.stop_on_rarity else "-",
        )
        try:
            reason = await self._loop()
        except asyncio.CancelledError:
            self._state = AutoRollState.CANCELLED
            raise
        except Exception:
            self._state = AutoRollState.FAILED
            logger.exception("Auto-roll for player %s failed after %s rolls.", self._player_id, len(self._rolls))
            raise
        return await self._finish(reason)

    async def _loop(self) -> StopReason:
        stop_on = self._config.stop_on_rarity
        while True:
            if len(self._rolls) >= self._config.max_rolls:
                return StopReason.MAX_REACHED
            if self._cancel_requested:
                return StopReason.CANCELLED

            await self._resume.wait()
            if self._cancel_requested:
                return StopReason.CANCELLED

            try:
                result = await self._orchestrator.roll_one(
                    self._player_id, self._weights, self._policy, cost=self._cost
                )
            except InsufficientCurrency as exc:
                logger.info("Auto-roll for player %s out of currency: %s", self._player_id, exc)
                return StopReason.INSUFFICIENT_CURRENCY

            self._rolls.append(result)
            if self._on_progress is not None:
                await self._on_progress(
                    AutoRollProgress(
                        player_id=self._player_id,
                        completed=len(self._rolls),
                        max_rolls=self._config.max_rolls,
                        last_roll=result,
                    )
                )

            if stop_on is not None and result.rarity_drawn >= stop_on:
                return StopReason.RARITY_ACHIEVED

            if len(self._rolls) % self._config.batch_size == 0:
                await self._event_bus.publish(
                    AUTOROLL_BATCH,
                    {"player_id": self._player_id, "completed": len(self._rolls)},
                )
            # Let cancel/pause requests from other tasks land between rolls.
            await asyncio.sleep(0)

    async def _finish(self, reason: StopReason) -> AutoRollResult:
        result = AutoRollResult(
            total_rolls=len(self._rolls),
            stopped_reason=reason,
            rolls=tuple(self._rolls),
        )
        self._result = result
        if reason is StopReason.CANCELLED:
            self._state = AutoRollState.CANCELLED
        else:
            self._state = AutoRollState.COMPLETED
        logger.info(
            "Auto-roll for player %s stopped: %s after %s rolls.",
            self._player_id,
            reason.value,
            result.total_rolls,
        )
        await self._event_bus.publish(
            AUTOROLL_FINISHED,
            {
                "player_id": self._player_id,
                "reason": reason.value,
                "total_rolls": result.total_rolls,
            },
        )
        if self._on_complete is not None:
            await self._on_complete(result)
        return result
