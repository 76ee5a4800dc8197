import asyncio
from typing import Any, Callable, Coroutine, List, Optional, Set

import pytest

from gateway.config import GatewaySettings
from gateway.network.scheduler import Scheduler, TimerHandle
from gateway.network.transport.dummy import DummyTransport


class FakeTimer(TimerHandle):
    def __init__(self, due: float, callback: Callable[[], None], interval: Optional[float]) -> None:
        self.due = due
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class FakeScheduler(Scheduler):
    """Simulated clock; timers only fire from ``advance``."""

    def __init__(self) -> None:
        self.clock = 0.0
        self.timers: List[FakeTimer] = []
        self.tasks: Set[asyncio.Task[Any]] = set()

    def now(self) -> float:
        return self.clock

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = FakeTimer(self.clock + delay, callback, None)
        self.timers.append(timer)
        return timer

    def call_periodic(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        timer = FakeTimer(self.clock + interval, callback, interval)
        self.timers.append(timer)
        return timer

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    def active(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def one_shots(self) -> List[FakeTimer]:
        return [timer for timer in self.active() if timer.interval is None]

    def periodics(self) -> List[FakeTimer]:
        return [timer for timer in self.active() if timer.interval is not None]

    def advance(self, seconds: float) -> None:
        target = self.clock + seconds
        while True:
            due = [timer for timer in self.active() if timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: item.due)
            self.clock = timer.due
            if timer.interval is None:
                timer.cancel()
            else:
                timer.due += timer.interval
            timer.callback()
        self.clock = target


async def settle(rounds: int = 50) -> None:
    """Let queued callbacks and background tasks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)


class TransportPool:
    """Transport factory handing out a fresh DummyTransport per connect attempt."""

    def __init__(self) -> None:
        self.created: List[DummyTransport] = []
        self.connect_errors: List[Optional[Exception]] = []

    def __call__(self, settings: GatewaySettings) -> DummyTransport:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        transport = DummyTransport(settings, connect_error=error)
        self.created.append(transport)
        return transport

    @property
    def current(self) -> DummyTransport:
        return self.created[-1]


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(token="secret-token", url="wss://gateway.test/", transport="dummy")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transports() -> TransportPool:
    return TransportPool()


@pytest.fixture
def settle_loop():
    return settle
