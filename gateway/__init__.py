"""Persistent-connection client for an opcode-framed gateway protocol."""

from gateway.config import GatewaySettings, get_settings
from gateway.network import EventKind, GatewayConnection, GatewayConnectError, GatewayEvent

__all__ = [
    "GatewaySettings",
    "get_settings",
    "EventKind",
    "GatewayConnection",
    "GatewayConnectError",
    "GatewayEvent",
]
