"""Heartbeat timer ownership and round-trip measurement."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from shared.protocol import encode_frame, make_heartbeat_frame

from gateway.network.scheduler import Scheduler, TimerHandle
from gateway.network.session_state import GatewaySession

LOGGER = logging.getLogger(__name__)

SendFrame = Callable[[str], Awaitable[None]]


class HeartbeatScheduler:
    """Owns the single periodic heartbeat timer of a connection.

    ``send`` is the connection's frame sender; it is a no-op while no
    transport is attached.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        session: GatewaySession,
        send: SendFrame,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._scheduler = scheduler
        self._session = session
        self._send = send
        self._log = logger or LOGGER
        self._timer: Optional[TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._timer is not None

    def arm(self, interval_ms: Optional[int]) -> None:
        self.disarm()
        self._session.heartbeat_interval_ms = interval_ms
        if interval_ms and interval_ms > 0:
            self._log.debug("set heartbeat timer: %s ms", interval_ms)
            self._timer = self._scheduler.call_periodic(interval_ms / 1000, self._tick)
        else:
            self._log.debug("disable heartbeat timer")

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _tick(self) -> None:
        self._scheduler.spawn(self.beat(), name="gateway-heartbeat")

    async def beat(self) -> None:
        """Send one heartbeat carrying the last seen sequence."""

        self._log.debug("send heartbeat")
        self._session.heartbeat_sent_at = self._scheduler.now()
        await self._send(encode_frame(make_heartbeat_frame(self._session.sequence.value)))

    def acknowledge(self) -> Optional[float]:
        sent_at = self._session.heartbeat_sent_at
        if sent_at is None:
            self._log.debug("heartbeat ack without a pending heartbeat")
            return None
        latency = round((self._scheduler.now() - sent_at) * 1000, 2)
        self._session.latency_ms = latency
        self._log.debug("heartbeat ack, %s ms", latency)
        return latency
