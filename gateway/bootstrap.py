"""Gateway bootstrap entrypoint for connection wiring."""

from __future__ import annotations

import asyncio
import logging
from typing import Type

from gateway.config import GatewaySettings, get_settings
from gateway.network import GatewayConnectError, GatewayConnection, GatewayEvent, EventKind
from gateway.network.transport import BaseTransport, DummyTransport, WebSocketTransport

LOGGER = logging.getLogger(__name__)


def build_connection(settings: GatewaySettings) -> GatewayConnection:
    """Construct a connection for ``settings`` with logging listeners attached."""

    resolved_cls: Type[BaseTransport]
    resolved_cls = WebSocketTransport if settings.transport == "websocket" else DummyTransport
    LOGGER.debug("Initialising gateway connection via %s", resolved_cls.__name__)
    connection = GatewayConnection(settings, lambda s: resolved_cls(s))

    def _log_event(event: GatewayEvent) -> None:
        if event.kind is EventKind.MESSAGE:
            LOGGER.info("Gateway dispatch %s", event.name)
        elif event.kind is EventKind.FATAL:
            LOGGER.error("Gateway session terminated (close code %s): %s", event.close_code, event.reason)
        else:
            LOGGER.info("Gateway %s", event.kind.value)

    for kind in EventKind:
        connection.add_listener(kind, _log_event)
    return connection


async def serve_forever(settings: GatewaySettings | None = None) -> None:
    """Connect and keep the session alive until cancelled."""

    settings = settings or get_settings()
    connection = build_connection(settings)
    try:
        await connection.connect()
    except GatewayConnectError as exc:
        LOGGER.warning("Initial connect failed, retrying in background: %s", exc)
    try:
        await asyncio.Future()  # block until cancelled
    except asyncio.CancelledError:
        LOGGER.info("Gateway shutdown requested")
        raise
    finally:
        await connection.close()


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(serve_forever(settings))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
