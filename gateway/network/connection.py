"""Connection manager that owns the gateway transport lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from typing import Callable, Optional

from shared.models.gateway import IdentifyFrame
from shared.protocol import CloseDecision, classify_close, describe_close, make_identify_frame

from gateway.config import GatewaySettings
from gateway.network.backoff import BackoffController
from gateway.network.errors import GatewayConnectError
from gateway.network.events import EventBus, EventKind, GatewayEvent, Listener
from gateway.network.handler import ProtocolHandler
from gateway.network.heartbeat import HeartbeatScheduler
from gateway.network.scheduler import AsyncioScheduler, Scheduler
from gateway.network.session_state import ConnectionState, GatewaySession
from gateway.network.transport.base import BaseTransport, TransportClosed

LOGGER = logging.getLogger(__name__)


class GatewayConnection:
    """Maintains one gateway session: connect, heartbeat, reconnect.

    The connection exclusively owns the transport handle, the receive task and
    (through ``HeartbeatScheduler``) the heartbeat timer. Consumers observe it
    through ``add_listener``.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        transport_factory: Callable[[GatewaySettings], BaseTransport],
        *,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self._scheduler = scheduler or AsyncioScheduler()
        self._log = logger or LOGGER
        self._session = GatewaySession()
        self._transport: Optional[BaseTransport] = None
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._attempt = 0
        self._events = EventBus(self._scheduler, logger=logger)
        self._heartbeat = HeartbeatScheduler(self._scheduler, self._session, self._send, logger=logger)
        self._backoff = BackoffController(
            self._scheduler,
            self._session,
            disconnect=self.disconnect,
            connect=self._open,
            fast_window=settings.reconnect_fast_window_seconds,
            delay_min=settings.reconnect_delay_min_seconds,
            delay_max=settings.reconnect_delay_max_seconds,
            rng=rng,
            logger=logger,
        )
        self._handler = ProtocolHandler(
            self._session,
            self._heartbeat,
            send=self._send,
            close_transport=self._close_transport,
            emit=self._events.emit,
            identify=self._build_identify,
            logger=logger,
        )

    @property
    def session(self) -> GatewaySession:
        return self._session

    @property
    def state(self) -> ConnectionState:
        return self._session.state

    @property
    def sequence(self) -> Optional[int]:
        return self._session.sequence.value

    @property
    def latency_ms(self) -> Optional[float]:
        return self._session.latency_ms

    @property
    def url(self) -> str:
        return str(self._settings.url)

    def add_listener(self, kind: EventKind, listener: Listener) -> None:
        self._events.add_listener(kind, listener)

    def remove_listener(self, kind: EventKind, listener: Listener) -> None:
        self._events.remove_listener(kind, listener)

    async def connect(self) -> None:
        """Open the transport; returns once it is open (not once the session is ready).

        A no-op while connecting or connected. On failure the state returns to
        IDLE, a reconnect cycle is scheduled in the background and
        ``GatewayConnectError`` is raised. Calling it again takes over from
        that cycle.
        """

        if self._session.state is not ConnectionState.IDLE:
            return
        self._backoff.resume()
        self._backoff.cancel_pending()
        await self._open()

    async def _open(self) -> None:
        if self._session.state is not ConnectionState.IDLE:
            return
        self._session.closed_by_local = False
        self._session.transition(ConnectionState.CONNECTING)
        self._attempt += 1
        attempt = self._attempt
        self._log.debug("connecting to: %s", self.url)

        try:
            transport = self._transport_factory(self._settings)
            await transport.connect(self.url)
        except Exception as exc:  # noqa: BLE001
            self._log.debug("websocket connect error: %s", exc)
            if attempt == self._attempt:
                if self._session.state is ConnectionState.CONNECTING:
                    self._session.transition(ConnectionState.IDLE)
                self._backoff.schedule()
            raise GatewayConnectError(str(exc)) from exc

        if attempt != self._attempt or self._session.state is not ConnectionState.CONNECTING:
            self._log.debug("connect superseded by disconnect, closing new transport")
            with contextlib.suppress(Exception):
                await transport.close()
            return

        self._transport = transport
        self._session.reset_for_connect()
        self._session.transition(ConnectionState.CONNECTED)
        self._log.debug("connected to: %s", self.url)
        self._receive_task = self._scheduler.spawn(self._receive_loop(transport), name="gateway-receive")
        self._events.emit(GatewayEvent(EventKind.CONNECTED))

    async def disconnect(self) -> None:
        """Tear down the transport, heartbeat timer and receive task."""

        self._session.last_disconnect_at = self._scheduler.now()
        if self._session.state is ConnectionState.IDLE and self._transport is None:
            return

        self._session.closed_by_local = True
        transport = self._transport
        was_connected = self._session.state is ConnectionState.CONNECTED
        self._transport = None
        self._attempt += 1
        self._heartbeat.disarm()
        self._session.transition(ConnectionState.IDLE)

        if was_connected:
            self._events.emit(GatewayEvent(EventKind.DISCONNECTED))

        if transport is not None:
            try:
                await transport.close()
            except Exception:  # noqa: BLE001
                self._log.debug("Suppress transport close error", exc_info=True)
        await self._cancel_receive_task()

    async def close(self) -> None:
        """Final shutdown: stop every pending or running reconnect, then disconnect.

        A later ``connect`` lifts the shutdown.
        """

        self._backoff.stop()
        await self.disconnect()

    async def _cancel_receive_task(self) -> None:
        task = self._receive_task
        self._receive_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _send(self, frame: str) -> None:
        transport = self._transport
        if transport is None:
            self._log.debug("no transport, dropping frame")
            return
        try:
            await transport.send(frame)
        except TransportClosed:
            self._log.debug("send on closed transport ignored")
        except Exception as exc:  # noqa: BLE001
            self._on_transport_error(exc)

    async def _close_transport(self) -> None:
        if self._transport is not None:
            await self._transport.close()

    def _build_identify(self) -> IdentifyFrame:
        settings = self._settings
        return make_identify_frame(
            token=settings.token,
            os=settings.identify_os,
            browser=settings.identify_browser,
            device=settings.identify_device,
            large_threshold=settings.identify_large_threshold,
            compress=settings.identify_compress,
        )

    async def _receive_loop(self, transport: BaseTransport) -> None:
        while True:
            try:
                raw = await transport.receive()
            except asyncio.CancelledError:
                raise
            except TransportClosed as exc:
                await self._on_transport_close(transport, exc.code, exc.reason)
                return
            except Exception as exc:  # noqa: BLE001
                self._on_transport_error(exc)
                if transport.closed:
                    await self._on_transport_close(transport, None, str(exc))
                    return
                continue
            if transport is not self._transport:
                return
            try:
                await self._handler.handle_raw(raw)
            except Exception:  # noqa: BLE001
                self._log.exception("frame handling failed")

    def _on_transport_error(self, exc: BaseException) -> None:
        if self._session.state is ConnectionState.IDLE:
            return
        self._log.error("websocket error: %s", exc)

    async def _on_transport_close(self, transport: BaseTransport, code: Optional[int], reason: str) -> None:
        if self._session.state is ConnectionState.IDLE or transport is not self._transport:
            return

        self._log.error("websocket close, code=%s (%s), reason=%s", code, describe_close(code), reason)
        self._heartbeat.disarm()
        self._transport = None

        if classify_close(code) is CloseDecision.FATAL:
            await self.disconnect()
            self._log.error("fatal close code %s, no reconnect", code)
            self._events.emit(GatewayEvent(EventKind.FATAL, close_code=code, reason=reason))
        elif self._session.closed_by_local or self._backoff.stopped:
            self._log.debug("closed by local, no reconnect")
            await self.disconnect()
        else:
            await self._backoff.reconnect()
