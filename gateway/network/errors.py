"""Exceptions raised by the gateway connection."""

from __future__ import annotations


class GatewayConnectError(RuntimeError):
    """Raised when the transport cannot be opened."""
