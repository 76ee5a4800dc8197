"""Timer service used by the gateway state machine.

Everything runs on one asyncio loop: timers are ``loop.call_later`` handles
and the work they trigger runs as tracked background tasks.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Coroutine, Optional, Set

LOGGER = logging.getLogger(__name__)


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        ...

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(ABC):
    """One-shot and periodic timers plus background tasks on a single control flow."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    @abstractmethod
    def call_periodic(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
        ...


class _LoopTimer(TimerHandle):
    def __init__(self, loop: asyncio.AbstractEventLoop, delay: float, callback: Callable[[], None], *, repeat: bool) -> None:
        self._loop = loop
        self._delay = delay
        self._callback = callback
        self._repeat = repeat
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_later(delay, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        if self._repeat:
            self._handle = self._loop.call_later(self._delay, self._fire)
        else:
            self._handle = None
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Scheduler bound to the running asyncio loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._tasks: Set[asyncio.Task[Any]] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return _LoopTimer(self.loop, max(0.0, delay), callback, repeat=False)

    def call_periodic(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("Periodic interval must be positive")
        return _LoopTimer(self.loop, interval, callback, repeat=True)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
        task = self.loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finalise)
        return task

    def _finalise(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Background task %s failed", task.get_name(), exc_info=exc)

    async def shutdown(self) -> None:
        """Cancel and await every background task still running."""

        tasks = [task for task in self._tasks if task is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
