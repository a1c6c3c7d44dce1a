"""Async pub-sub for roll lifecycle notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Iterable, Mapping

logger = logging.getLogger(__name__)

ROLL_COMPLETED = "roll.completed"
BUNDLE_COMPLETED = "roll.bundle.completed"
AUTOROLL_BATCH = "autoroll.batch"
AUTOROLL_FINISHED = "autoroll.finished"

EventPayload = Mapping[str, Any]
EventListener = Callable[[EventPayload], Awaitable[None]]


class EventBus:
    """Deliver payloads to listeners in subscription order."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[EventListener]] = defaultdict(list)

    def subscribe(self, event_name: str, listener: EventListener) -> None:
        self._listeners[event_name].append(listener)

    def unsubscribe(self, event_name: str, listener: EventListener) -> None:
        listeners = self._listeners.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    async def publish(self, event_name: str, payload: EventPayload) -> None:
        listeners = list(self._listeners.get(event_name, ()))
        if listeners:
            logger.debug("Publishing %s to %s listener(s).", event_name, len(listeners))
        for listener in listeners:
            await listener(payload)

    def listeners(self, event_name: str) -> Iterable[EventListener]:
        return tuple(self._listeners.get(event_name, ()))
