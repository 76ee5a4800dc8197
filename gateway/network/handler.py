"""Opcode handling for inbound gateway frames."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Optional, cast

from shared.models.gateway import (
    DispatchFrame,
    GatewayFrame,
    HelloFrame,
    IdentifyFrame,
    InboundFrame,
)
from shared.protocol import GatewayDecodeError, Opcode, READY_EVENT, encode_frame, parse_frame

from gateway.network.events import EventKind, GatewayEvent
from gateway.network.heartbeat import HeartbeatScheduler
from gateway.network.session_state import ConnectionState, GatewaySession

LOGGER = logging.getLogger(__name__)

FrameHandler = Callable[[InboundFrame], Awaitable[None]]


class ProtocolHandler:
    """Decodes inbound frames and reacts per opcode.

    Frames arriving while the session is IDLE are dropped, so a transport that
    is still closing cannot touch a torn-down session.
    """

    def __init__(
        self,
        session: GatewaySession,
        heartbeat: HeartbeatScheduler,
        *,
        send: Callable[[str], Awaitable[None]],
        close_transport: Callable[[], Awaitable[None]],
        emit: Callable[[GatewayEvent], None],
        identify: Callable[[], IdentifyFrame],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session = session
        self._heartbeat = heartbeat
        self._send = send
        self._close_transport = close_transport
        self._emit = emit
        self._identify = identify
        self._log = logger or LOGGER
        self._handlers: Dict[int, FrameHandler] = {
            Opcode.HELLO: self._on_hello,
            Opcode.HEARTBEAT: self._on_heartbeat_request,
            Opcode.RECONNECT: self._on_reconnect,
            Opcode.INVALID_SESSION: self._on_invalid_session,
            Opcode.HEARTBEAT_ACK: self._on_heartbeat_ack,
            Opcode.DISPATCH: self._on_dispatch,
        }

    async def handle_raw(self, raw: str | bytes) -> None:
        if self._session.state is ConnectionState.IDLE:
            return
        try:
            frame = parse_frame(raw)
        except GatewayDecodeError as exc:
            self._log.error("dropping undecodable frame: %s", exc)
            return
        await self.handle(frame)

    async def handle(self, frame: InboundFrame) -> None:
        if self._session.state is ConnectionState.IDLE:
            return
        self._session.sequence.observe(frame.s)
        handler = self._handlers.get(frame.op)
        if handler is None:
            self._log.warning("unknown opcode: %s", frame.op)
            return
        await handler(frame)

    async def _on_hello(self, frame: GatewayFrame) -> None:
        hello = cast(HelloFrame, frame)
        self._heartbeat.arm(hello.d.heartbeat_interval)
        await self._send(encode_frame(self._identify()))

    async def _on_heartbeat_request(self, frame: GatewayFrame) -> None:
        self._log.debug("force heartbeat")
        await self._heartbeat.beat()

    async def _on_reconnect(self, frame: GatewayFrame) -> None:
        self._log.debug("force reconnect")
        await self._close_transport()

    async def _on_invalid_session(self, frame: GatewayFrame) -> None:
        self._log.error("invalid session, force reconnect")
        await self._close_transport()

    async def _on_heartbeat_ack(self, frame: GatewayFrame) -> None:
        self._heartbeat.acknowledge()

    async def _on_dispatch(self, frame: GatewayFrame) -> None:
        dispatch = cast(DispatchFrame, frame)
        self._log.debug("dispatch: %s", dispatch.t)
        if dispatch.t == READY_EVENT:
            if isinstance(dispatch.d, dict):
                self._session.session_id = dispatch.d.get("session_id")
            self._log.debug("new session ready: %s", self._session.session_id)
            self._emit(GatewayEvent(EventKind.READY))
        self._emit(GatewayEvent(EventKind.MESSAGE, name=dispatch.t, payload=dispatch.d))
