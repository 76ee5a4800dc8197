"""Transport abstractions for the gateway connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class TransportClosed(RuntimeError):
    """Raised by a transport once the underlying connection is closed."""

    def __init__(self, code: Optional[int] = None, reason: str = "") -> None:
        super().__init__(f"transport closed (code={code}, reason={reason!r})")
        self.code = code
        self.reason = reason


class BaseTransport(ABC):
    """Abstract message-based duplex transport carrying text frames."""

    @abstractmethod
    async def connect(self, url: str) -> None:
        ...

    @abstractmethod
    async def send(self, frame: str) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str:
        """Return the next inbound frame; raise ``TransportClosed`` once closed."""

    @abstractmethod
    async def close(self) -> None:
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        ...
