"""Reconnect pacing after a disconnect."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from gateway.network.errors import GatewayConnectError
from gateway.network.scheduler import Scheduler, TimerHandle
from gateway.network.session_state import GatewaySession

LOGGER = logging.getLogger(__name__)


class BackoffController:
    """Reconnects immediately, or after a random delay when disconnects come too fast.

    A disconnect within ``fast_window`` seconds of the previous one waits
    ``uniform(delay_min, delay_max)`` seconds before the next attempt.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        session: GatewaySession,
        *,
        disconnect: Callable[[], Awaitable[None]],
        connect: Callable[[], Awaitable[None]],
        fast_window: float = 60.0,
        delay_min: float = 3.0,
        delay_max: float = 10.0,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._scheduler = scheduler
        self._session = session
        self._disconnect = disconnect
        self._connect = connect
        self._fast_window = fast_window
        self._delay_min = delay_min
        self._delay_max = delay_max
        self._rng = rng or random.Random()
        self._log = logger or LOGGER
        self._pending: Optional[TimerHandle] = None
        self._task: Optional[asyncio.Task[Any]] = None
        self._stopped = False

    @property
    def pending(self) -> bool:
        return self._pending is not None or (self._task is not None and not self._task.done())

    @property
    def stopped(self) -> bool:
        return self._stopped

    def schedule(self) -> None:
        """Run a reconnect cycle in the background."""

        if self._stopped:
            return
        self._task = self._scheduler.spawn(self.reconnect(), name="gateway-reconnect")

    async def reconnect(self) -> float:
        """Tear down, then start the next connect attempt; return the delay applied."""

        previous = self._session.last_disconnect_at
        await self._disconnect()
        if self._stopped:
            return 0.0
        now = self._scheduler.now()
        if previous is not None and now - previous < self._fast_window:
            delay = self._rng.uniform(self._delay_min, self._delay_max)
            self._log.warning("too fast reconnect, wait %.1f seconds...", delay)
            self._cancel_timer()
            self._pending = self._scheduler.call_later(delay, self._fire)
            return delay
        self._task = self._scheduler.spawn(self._attempt(), name="gateway-reconnect")
        return 0.0

    def cancel_pending(self) -> None:
        """Drop the delayed attempt and any reconnect work already running."""

        self._cancel_timer()
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def stop(self) -> None:
        """Final shutdown: no reconnect starts until ``resume``."""

        self._stopped = True
        self.cancel_pending()

    def resume(self) -> None:
        self._stopped = False

    def _cancel_timer(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self) -> None:
        self._pending = None
        if self._stopped:
            return
        self._task = self._scheduler.spawn(self._attempt(), name="gateway-reconnect")

    async def _attempt(self) -> None:
        if self._stopped:
            self._log.debug("reconnect skipped after shutdown")
            return
        try:
            await self._connect()
        except GatewayConnectError:
            # the failed attempt already scheduled the next cycle
            self._log.debug("reconnect attempt failed")
