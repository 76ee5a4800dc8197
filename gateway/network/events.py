"""Lifecycle and application events exposed to the consumer."""

from __future__ import annotations

import enum
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from gateway.network.scheduler import Scheduler

LOGGER = logging.getLogger(__name__)


class EventKind(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    READY = "ready"
    MESSAGE = "message"
    FATAL = "fatal"


@dataclass(frozen=True)
class GatewayEvent:
    """One emitted event.

    ``name``/``payload`` are set for MESSAGE, ``close_code``/``reason`` for FATAL.
    """

    kind: EventKind
    name: Optional[str] = None
    payload: Any = None
    close_code: Optional[int] = None
    reason: Optional[str] = None


Listener = Callable[[GatewayEvent], Optional[Awaitable[None]]]


class EventBus:
    """Typed listener registry; coroutine listeners run as background tasks."""

    def __init__(self, scheduler: Scheduler, *, logger: Optional[logging.Logger] = None) -> None:
        self._scheduler = scheduler
        self._log = logger or LOGGER
        self._listeners: Dict[EventKind, List[Listener]] = defaultdict(list)

    def add_listener(self, kind: EventKind, listener: Listener) -> None:
        self._log.debug("Registering listener for %s: %s", kind.value, listener)
        self._listeners[kind].append(listener)

    def remove_listener(self, kind: EventKind, listener: Listener) -> None:
        listeners = self._listeners.get(kind, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: GatewayEvent) -> None:
        for listener in list(self._listeners.get(event.kind, [])):
            try:
                result = listener(event)
            except Exception:  # noqa: BLE001
                self._log.exception("Event listener failed for %s: %s", event.kind.value, listener)
                continue
            if inspect.isawaitable(result):
                self._scheduler.spawn(self._await_listener(event, listener, result), name=f"gateway-event-{event.kind.value}")

    async def _await_listener(self, event: GatewayEvent, listener: Listener, result: Awaitable[None]) -> None:
        try:
            await result
        except Exception:  # noqa: BLE001
            self._log.exception("Event listener failed for %s: %s", event.kind.value, listener)
