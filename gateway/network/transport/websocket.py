"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from gateway.network.transport.base import BaseTransport, TransportClosed

LOGGER = logging.getLogger(__name__)


def _closed_from(exc: ConnectionClosed) -> TransportClosed:
    received = exc.rcvd
    if received is None:
        return TransportClosed(None, "")
    return TransportClosed(received.code, received.reason)


class WebSocketTransport(BaseTransport):
    """Gateway transport backed by the ``websockets`` client."""

    def __init__(self, settings: Any = None) -> None:
        self._settings = settings
        self._ws: Optional[Any] = None
        self._closed = False

    async def connect(self, url: str) -> None:
        LOGGER.info("Connecting to gateway WebSocket at %s", url)
        self._ws = await websockets.connect(url)
        self._closed = False

    async def send(self, frame: str) -> None:
        if not self._ws:
            raise TransportClosed(None, "WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", frame)
        try:
            await self._ws.send(frame)
        except ConnectionClosed as exc:
            self._closed = True
            raise _closed_from(exc) from exc

    async def receive(self) -> str:
        if not self._ws:
            raise TransportClosed(None, "WebSocket transport not connected")
        try:
            raw = await self._ws.recv()
        except ConnectionClosed as exc:
            self._closed = True
            raise _closed_from(exc) from exc
        LOGGER.debug("WebSocket receive: %s", raw)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    async def close(self) -> None:
        if self._ws and not self._closed:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
