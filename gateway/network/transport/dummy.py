"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, List, Optional, Union

from .base import BaseTransport, TransportClosed

LOGGER = logging.getLogger(__name__)

_Inbound = Union[str, BaseException]


class DummyTransport(BaseTransport):
    """Loopback transport: frames are fed by the caller and sends are recorded."""

    def __init__(self, settings: Any = None, *, connect_error: Optional[Exception] = None) -> None:
        self._settings = settings
        self._inbox: asyncio.Queue[_Inbound] = asyncio.Queue()
        self._closed = False
        self.connect_error = connect_error
        self.url: Optional[str] = None
        self.sent: List[str] = []
        self.close_calls = 0

    async def connect(self, url: str) -> None:
        LOGGER.debug("Dummy transport connect(%s)", url)
        if self.connect_error is not None:
            raise self.connect_error
        self.url = url

    async def send(self, frame: str) -> None:
        if self._closed:
            raise TransportClosed(None, "dummy transport closed")
        LOGGER.debug("Dummy transport send(): %s", frame)
        self.sent.append(frame)

    async def receive(self) -> str:
        item = await self._inbox.get()
        if isinstance(item, TransportClosed):
            self._closed = True
            raise item
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
        self.close_calls += 1
        if not self._closed:
            self._closed = True
            self._inbox.put_nowait(TransportClosed(1000, "closed locally"))

    @property
    def closed(self) -> bool:
        return self._closed

    def feed(self, frame: Union[str, dict[str, Any]]) -> None:
        """Queue an inbound frame as if the remote had sent it."""

        self._inbox.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def remote_close(self, code: Optional[int] = None, reason: str = "") -> None:
        self._inbox.put_nowait(TransportClosed(code, reason))

    def fail(self, exc: BaseException) -> None:
        """Surface a transport error without closing the connection."""

        self._inbox.put_nowait(exc)

    def sent_frames(self) -> List[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]
